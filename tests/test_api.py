from conftest import make_image
from pixelsqueeze import storage
from pixelsqueeze.config import CONVERT_MAX_SIZE_MB, SESSION_COOKIE
from worker import worker


def _post(client, data, filename="photo.jpg", content_type="image/jpeg", **fields):
    return client.post("/jobs", files={"file": (filename, data, content_type)}, data=fields)


def test_home_page_renders_and_sets_session(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "Squeeze" in response.text
    assert SESSION_COOKIE in response.cookies


def test_compress_flow(client):
    source = make_image("JPEG", size=(1600, 1200), noise=True, quality=95)
    response = _post(client, source, output_format="jpeg", quality="0.8", target_size="80", mode="compress")

    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "ready"
    assert job["error"] is None
    assert job["download_filename"] == "compressed-photo.jpeg"
    assert job["engine_config"]["max_size_mb"] == 80 / 1024
    assert 0 < job["result_size"] <= 80 * 1024

    result = client.get(f"/jobs/{job['id']}/result", params={"download": "true"})
    assert result.status_code == 200
    assert result.headers["content-type"] == "image/jpeg"
    assert result.headers["content-disposition"] == 'attachment; filename="compressed-photo.jpeg"'
    assert len(result.content) == job["result_size"]


def test_convert_png_to_webp(client):
    response = _post(client, make_image("PNG"), filename="logo.png", content_type="image/png",
                     output_format="webp", mode="convert")

    job = response.json()
    assert job["status"] == "ready"
    assert job["download_filename"].endswith(".webp")
    assert job["engine_config"]["quality"] == 1.0
    assert job["engine_config"]["max_size_mb"] == CONVERT_MAX_SIZE_MB

    result = client.get(f"/jobs/{job['id']}/result")
    assert result.headers["content-type"] == "image/webp"
    assert result.headers["content-disposition"].startswith("inline")


def test_corrupted_upload_reports_fixed_message(client):
    job = _post(client, b"garbage bytes", filename="broken.jpg").json()

    assert job["status"] == "errored"
    assert job["error"] == "Failed to compress the image. Please try again."
    assert job["result_size"] is None
    assert client.get(f"/jobs/{job['id']}/result").status_code == 404


def test_original_preview_returns_source(client):
    source = make_image("PNG")
    job = _post(client, source, filename="a.png", content_type="image/png").json()

    original = client.get(f"/jobs/{job['id']}/original")
    assert original.content == source
    assert original.headers["content-type"] == "image/png"


def test_invalid_options_are_rejected(client):
    assert _post(client, make_image(), quality="0.3").status_code == 422
    assert _post(client, make_image(), output_format="tiff").status_code == 422
    assert _post(client, make_image(), mode="shrink").status_code == 422


def test_unknown_job_is_404(client):
    assert client.get("/jobs/does-not-exist").status_code == 404


def test_second_upload_replaces_first(client):
    first = _post(client, make_image("PNG"), filename="first.png", content_type="image/png").json()
    second = _post(client, make_image("PNG"), filename="second.png", content_type="image/png").json()

    assert client.get(f"/jobs/{first['id']}").status_code == 404
    assert client.get(f"/jobs/{second['id']}").json()["id"] == second["id"]
    assert "compressed-second.jpeg" in client.get("/").text


def test_form_upload_redirects_to_job(client):
    response = client.post(
        "/upload",
        files={"file": ("cat.png", make_image("PNG"), "image/png")},
        data={"output_format": "png", "mode": "convert"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    location = response.headers["location"]
    assert location.startswith("/?job_id=")

    page = client.get(location)
    assert "Download Compressed Image" in page.text
    assert 'download="compressed-cat.png"' in page.text


def test_form_upload_without_file_is_a_no_op(client):
    response = client.post("/upload", data={"mode": "compress"}, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_oversize_upload_is_not_kept_in_memory(client, monkeypatch):
    monkeypatch.setattr(worker, "MAX_UPLOAD_MB", 0.01)
    limit = worker.upload_limit()
    source = make_image("PNG", size=(400, 400), noise=True)
    assert len(source) > limit

    job = _post(client, source, filename="huge.png", content_type="image/png").json()

    assert job["status"] == "errored"
    stored = storage.get_job(job["id"])
    assert len(stored.source_bytes) <= limit
    assert client.get(f"/jobs/{job['id']}/original").status_code == 404
    assert f"/jobs/{job['id']}/original" not in client.get("/").text
