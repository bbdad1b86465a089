import os

import pytest
import requests
from rich.console import Console

from testfairyuploader.errors import NetworkError, UploadError
from testfairyuploader.models import Secret, UploadRequest
from testfairyuploader.services.uploader import RemoteUploader


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None


class FakePostResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeDownloadResponse:
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.headers = {"Content-Length": str(sum(len(chunk) for chunk in chunks))}
        self.closed = False

    def raise_for_status(self):
        return None

    def iter_content(self, chunk_size=8192):
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


class FakeRequestsModule:
    RequestException = requests.RequestException
    HTTPError = requests.HTTPError

    def __init__(self, post_responses=(), download=None, post_error=None):
        self.post_responses = list(post_responses)
        self.download = download
        self.post_error = post_error
        self.posts = []
        self.gets = []

    def post(self, url, data=None, files=None, **_kwargs):
        self.posts.append({"url": url, "data": dict(data), "files": [name for name, _ in files]})
        if self.post_error:
            raise self.post_error
        return self.post_responses.pop(0)

    def get(self, url, params=None, **kwargs):
        self.gets.append({"url": url, "params": params, "stream": kwargs.get("stream")})
        return self.download


def _request(**overrides):
    values = {
        "api_key": Secret("k" * 40),
        "app_file": "/builds/app.apk",
        "testers_groups": "qa",
        "notify_testers": True,
        "auto_update": True,
        "network": True,
        "record_on_background": True,
    }
    values.update(overrides)
    return UploadRequest(**values)


def _uploader(requests_module, server=None, ci_url=None):
    return RemoteUploader(
        logger=DummyLogger(),
        console=Console(record=True),
        requests_module=requests_module,
        server=server,
        ci_url=ci_url,
    )


@pytest.fixture
def apk(tmp_path):
    path = tmp_path / "app.apk"
    path.write_bytes(b"apk-bytes")
    return path


def test_upload_app_withholds_notifications(apk):
    fake = FakeRequestsModule([FakePostResponse({"status": "ok", "instrumented_url": "https://x/i.apk"})])

    response = _uploader(fake).upload_app(str(apk), None, "notes", _request(), send_notifications=False)

    assert response["instrumented_url"] == "https://x/i.apk"
    post = fake.posts[0]
    assert post["url"] == "https://upload.testfairy.com/api/upload/"
    assert "notify" not in post["data"]
    assert "auto-update" not in post["data"]
    assert post["data"]["changelog"] == "notes"
    assert post["data"]["testers-groups"] == "qa"
    assert post["data"]["metrics"] == "cpu,memory,network,logcat"
    assert post["data"]["options"] == "record-on-background"
    assert post["files"] == ["apk_file"]
    assert "jenkins_url" not in post["data"]


def test_upload_app_sends_notifications_when_requested(apk, tmp_path):
    mapping = tmp_path / "mapping.txt"
    mapping.write_text("a -> b", encoding="utf-8")
    fake = FakeRequestsModule([FakePostResponse({"status": "ok", "instrumented_url": "https://x/i.apk"})])

    _uploader(fake).upload_app(str(apk), str(mapping), "", _request(), send_notifications=True)

    assert fake.posts[0]["data"]["notify"] == "on"
    assert fake.posts[0]["data"]["auto-update"] == "on"
    assert fake.posts[0]["files"] == ["apk_file", "symbols_file"]


def test_upload_signed_apk_carries_notifications(apk):
    fake = FakeRequestsModule([FakePostResponse({"status": "ok", "build_url": "https://app.testfairy.com/b/1"})])

    response = _uploader(fake, server="https://tf.example.com/").upload_signed_apk(
        str(apk), None, _request(auto_update=False)
    )

    assert response["build_url"] == "https://app.testfairy.com/b/1"
    assert fake.posts[0]["url"] == "https://tf.example.com/api/upload-signed/"
    assert fake.posts[0]["data"]["notify"] == "on"
    assert fake.posts[0]["data"]["auto-update"] == "off"


def test_upload_signed_apk_reports_ci_server(apk):
    fake = FakeRequestsModule([FakePostResponse({"status": "ok", "build_url": "https://app.testfairy.com/b/1"})])

    _uploader(fake, ci_url="https://jenkins.example.com/").upload_signed_apk(str(apk), None, _request())

    assert fake.posts[0]["data"]["jenkins_url"] == "https://jenkins.example.com/"


def test_upload_rejected_by_server_raises_upload_error(apk):
    fake = FakeRequestsModule([FakePostResponse({"status": "fail", "message": "Invalid API key"})])

    with pytest.raises(UploadError, match="Invalid API key"):
        _uploader(fake).upload_app(str(apk), None, "", _request(), send_notifications=False)


def test_upload_http_error_raises_upload_error(apk):
    fake = FakeRequestsModule([FakePostResponse({}, status_code=500)])

    with pytest.raises(UploadError, match="500"):
        _uploader(fake).upload_signed_apk(str(apk), None, _request())


def test_upload_invalid_json_raises_upload_error(apk):
    fake = FakeRequestsModule([FakePostResponse(ValueError("no json"))])

    with pytest.raises(UploadError, match="invalid JSON"):
        _uploader(fake).upload_app(str(apk), None, "", _request(), send_notifications=False)


def test_upload_connection_failure_raises_network_error(apk):
    fake = FakeRequestsModule(post_error=requests.ConnectionError("connection refused"))

    with pytest.raises(NetworkError, match="connection refused"):
        _uploader(fake).upload_app(str(apk), None, "", _request(), send_notifications=False)


def test_download_instrumented_streams_to_temp_file():
    download = FakeDownloadResponse([b"PK", b"\x03\x04", b"rest"])
    fake = FakeRequestsModule(download=download)

    path = _uploader(fake).download_instrumented("https://x/i.apk", "secret-key")

    try:
        assert os.path.basename(path).startswith("instrumented-")
        assert path.endswith(".apk")
        with open(path, "rb") as file_obj:
            assert file_obj.read() == b"PK\x03\x04rest"
        assert fake.gets[0] == {"url": "https://x/i.apk", "params": {"api_key": "secret-key"}, "stream": True}
        assert download.closed is True
    finally:
        os.remove(path)


def test_download_failure_closes_stream_and_removes_partial_file(tmp_path, monkeypatch):
    monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
    download = FakeDownloadResponse([b"partial"], error=requests.ConnectionError("reset by peer"))
    fake = FakeRequestsModule(download=download)

    with pytest.raises(NetworkError, match="reset by peer"):
        _uploader(fake).download_instrumented("https://x/i.apk", "key")

    assert download.closed is True
    assert list(tmp_path.iterdir()) == []
