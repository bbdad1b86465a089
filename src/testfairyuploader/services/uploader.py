"""TestFairy HTTP API client: upload, instrumented download, signed upload."""

import os
import tempfile
import time
from contextlib import ExitStack
from typing import Any, Dict, List, Optional, Tuple

import requests
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from testfairyuploader import __version__
from testfairyuploader.constants import (
    DEFAULT_SERVER,
    DOWNLOAD_CHUNK_SIZE,
    UPLOAD_ENDPOINT,
    UPLOAD_SIGNED_ENDPOINT,
)
from testfairyuploader.errors import NetworkError, UploadError
from testfairyuploader.errors_catalog import actionable_error
from testfairyuploader.models import UploadRequest


def _on_off(value: bool) -> str:
    return "on" if value else "off"


class RemoteUploader:
    """Talks to the TestFairy upload service."""

    def __init__(
        self,
        logger,
        console,
        requests_module=requests,
        server: Optional[str] = None,
        timeout: Optional[float] = None,
        ci_url: Optional[str] = None,
    ):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.server = (server or DEFAULT_SERVER).rstrip("/")
        self.timeout = timeout
        self.ci_url = ci_url
        self.headers = {"User-Agent": f"TestFairy Uploader/{__version__}"}

    def upload_app(
        self,
        app_path: str,
        mapping_path: Optional[str],
        changelog: str,
        request: UploadRequest,
        send_notifications: bool,
    ) -> Dict[str, Any]:
        """Uploads the original APK and returns the server response.

        With ``send_notifications`` off the ``notify`` and ``auto-update``
        directives are left out; they are sent with the signed upload once
        re-signing has finished.
        """
        data = self._base_fields(request, send_notifications)
        data.update(
            {
                "changelog": changelog,
                "max-duration": request.max_duration,
                "video": _on_off(request.video_enabled),
                "video-quality": request.video_quality,
                "screenshot-interval": request.screenshot_interval,
                "metrics": ",".join(request.metrics()),
                "options": ",".join(request.options()),
                "instrumentation": "on",
            }
        )
        if request.advanced_options:
            data["advanced-options"] = request.advanced_options

        self.logger.info("Uploading App...")
        response = self._post(UPLOAD_ENDPOINT, data, app_path, mapping_path, "upload")
        self._require_key(response, "instrumented_url", "upload")
        self.logger.info("Instrumented app available at %s", response["instrumented_url"])
        return response

    def download_instrumented(self, url: str, api_key: str) -> str:
        """Streams the instrumented APK to a new temp file and returns its path."""
        self.logger.info("Downloading instrumented app: %s", url)
        timestamp = int(time.time() * 1000)
        fd, dest_path = tempfile.mkstemp(prefix=f"instrumented-{timestamp}", suffix=".apk")

        try:
            with os.fdopen(fd, "wb") as file_obj, self.requests.get(
                url,
                params={"api_key": api_key},
                headers=self.headers,
                stream=True,
                timeout=self.timeout,
            ) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))

                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TaskProgressColumn(),
                    "•",
                    TimeElapsedColumn(),
                    console=self.console,
                ) as progress:
                    task = progress.add_task(
                        "[cyan]Downloading instrumented APK...", total=total_size or None
                    )
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if not chunk:
                            continue
                        file_obj.write(chunk)
                        progress.update(task, advance=len(chunk))
        except self.requests.RequestException as exc:
            self._discard(dest_path)
            raise NetworkError(f"Download of the instrumented app failed: {exc}") from exc
        except BaseException:
            self._discard(dest_path)
            raise

        self.logger.info("Instrumented app saved to %s", dest_path)
        return dest_path

    def upload_signed_apk(
        self,
        signed_path: str,
        mapping_path: Optional[str],
        request: UploadRequest,
    ) -> Dict[str, Any]:
        data = self._base_fields(request, send_notifications=True)

        self.logger.info("Uploading signed App...")
        response = self._post(UPLOAD_SIGNED_ENDPOINT, data, signed_path, mapping_path, "signed upload")
        self._require_key(response, "build_url", "signed upload")
        self.logger.info("Check the new build: %s", response["build_url"])
        return response

    def _base_fields(self, request: UploadRequest, send_notifications: bool) -> Dict[str, str]:
        data = {"api_key": request.api_key.get_plain_text()}
        if self.ci_url:
            data["jenkins_url"] = self.ci_url
        if request.testers_groups:
            data["testers-groups"] = request.testers_groups
        if send_notifications:
            data["notify"] = _on_off(request.notify_testers)
            data["auto-update"] = _on_off(request.auto_update)
        return data

    def _post(
        self,
        endpoint: str,
        data: Dict[str, str],
        apk_path: str,
        mapping_path: Optional[str],
        action: str,
    ) -> Dict[str, Any]:
        url = f"{self.server}{endpoint}"
        self.logger.debug("POST %s", url)

        with ExitStack() as stack:
            try:
                files: List[Tuple[str, Any]] = [
                    ("apk_file", (os.path.basename(apk_path), stack.enter_context(open(apk_path, "rb"))))
                ]
                if mapping_path:
                    files.append(
                        (
                            "symbols_file",
                            (
                                os.path.basename(mapping_path),
                                stack.enter_context(open(mapping_path, "rb")),
                            ),
                        )
                    )
            except OSError as exc:
                raise UploadError(f"Could not read file for the {action}: {exc}") from exc

            try:
                response = self.requests.post(
                    url,
                    data=data,
                    files=files,
                    headers=self.headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except self.requests.HTTPError as exc:
                raise UploadError(
                    actionable_error("upload_rejected", action=action, message=str(exc))
                ) from exc
            except self.requests.RequestException as exc:
                raise NetworkError(f"Could not reach {url} for the {action}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UploadError(
                actionable_error("upload_rejected", action=action, message="invalid JSON response")
            ) from exc

        if not isinstance(payload, dict) or payload.get("status") != "ok":
            message = payload.get("message") if isinstance(payload, dict) else None
            raise UploadError(
                actionable_error(
                    "upload_rejected", action=action, message=message or "unknown error"
                )
            )

        return payload

    def _require_key(self, response: Dict[str, Any], key: str, action: str):
        if not response.get(key):
            raise UploadError(
                actionable_error(
                    "upload_rejected", action=action, message=f"response has no '{key}'"
                )
            )

    def _discard(self, path: str):
        try:
            os.remove(path)
        except OSError:
            pass
