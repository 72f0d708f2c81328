import io

import pytest
from PIL import Image

from pixelsqueeze import storage


def make_image(fmt="JPEG", size=(320, 240), mode="RGB", noise=False, **save_params) -> bytes:
    """Builds an in-memory test image."""
    if noise:
        bands = [Image.effect_noise(size, 64) for _ in range(3)]
        img = Image.merge("RGB", bands)
        if mode == "RGBA":
            img.putalpha(Image.new("L", size, 200))
    else:
        color = (30, 120, 200, 128) if mode == "RGBA" else (30, 120, 200)
        img = Image.new(mode, size, color)

    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **save_params)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def clean_store():
    storage.reset()
    yield
    storage.reset()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from api.main import app

    with TestClient(app) as c:
        yield c
