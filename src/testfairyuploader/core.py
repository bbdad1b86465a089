import logging
import shutil
import socket
from enum import Enum
from typing import Optional

import requests
from rich.console import Console

from . import __version__
from .constants import CI_URL_VARIABLES, SERVER_VARIABLE
from .errors import TestFairyError
from .models import WorkflowRequest, WorkflowResult
from .services.changelog import ChangeLogExtractor
from .services.command_runner import CommandRunner
from .services.path_resolver import PathResolver
from .services.signing import SigningPipeline
from .services.uploader import RemoteUploader
from .services.validation import ValidationService

console = Console()
logger = logging.getLogger("testfairyuploader")


class WorkflowState(str, Enum):
    START = "start"
    PATHS_RESOLVED = "paths_resolved"
    VALIDATED = "validated"
    CHANGELOG_READY = "changelog_ready"
    UPLOADED = "uploaded"
    DOWNLOADED = "downloaded"
    SIGNED = "signed"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowOrchestrator:
    """Runs the upload, instrument, re-sign and re-upload sequence for one build."""

    def __init__(
        self,
        verbose: bool = False,
        requests_module=requests,
        command_runner: Optional[CommandRunner] = None,
        which=shutil.which,
    ):
        self.verbose = verbose
        self.requests_module = requests_module
        self.state = WorkflowState.START

        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.path_resolver = PathResolver(logger=logger)
        self.validation_service = ValidationService(
            command_runner=self.command_runner,
            logger=logger,
            which=which,
        )
        self.changelog_extractor = ChangeLogExtractor(logger=logger)
        self.signing_pipeline = SigningPipeline(
            command_runner=self.command_runner,
            path_resolver=self.path_resolver,
            logger=logger,
        )

    def _transition(self, state: WorkflowState):
        logger.debug("Workflow state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _build_uploader(self, request: WorkflowRequest) -> RemoteUploader:
        variables = request.build.variables
        server = variables.get(SERVER_VARIABLE)
        if server:
            logger.info("Using TestFairy server %s", server)
        ci_url = next((variables[name] for name in CI_URL_VARIABLES if variables.get(name)), None)
        return RemoteUploader(
            logger=logger,
            console=console,
            requests_module=self.requests_module,
            server=server,
            ci_url=ci_url,
        )

    def run(self, request: WorkflowRequest) -> WorkflowResult:
        self.state = WorkflowState.START
        if self.verbose:
            logger.setLevel(logging.DEBUG)

        if request.build.upstream_failed:
            logger.info("Build already failed, skipping TestFairy upload.")
            self._transition(WorkflowState.COMPLETED)
            return WorkflowResult(
                success=False,
                state=self.state.value,
                error="Skipped because the build has already failed.",
            )

        logger.info(
            "TestFairy Uploader... v %s, run on %s", __version__, socket.gethostname()
        )
        variables = request.build.variables
        upload_request = request.upload_request
        instrumented_url = None

        try:
            app_path = self.path_resolver.resolve(
                upload_request.app_file, variables, required=True, label="APK file"
            )
            mapping_path = self.path_resolver.resolve(
                upload_request.mapping_file, variables, required=False, label="symbols file"
            )
            self.signing_pipeline.check_credentials(request.credentials, variables)
            self._transition(WorkflowState.PATHS_RESOLVED)

            self.validation_service.validate_environment(request.environment)
            self.validation_service.validate_apk(request.environment.jarsigner_path, app_path)
            self._transition(WorkflowState.VALIDATED)

            changelog = self.changelog_extractor.extract(
                request.build, variables, request.build.change_set
            )
            self._transition(WorkflowState.CHANGELOG_READY)

            uploader = self._build_uploader(request)
            response = uploader.upload_app(
                app_path, mapping_path, changelog, upload_request, send_notifications=False
            )
            instrumented_url = response["instrumented_url"]
            self._transition(WorkflowState.UPLOADED)

            instrumented_path = uploader.download_instrumented(
                instrumented_url, upload_request.api_key.get_plain_text()
            )
            self._transition(WorkflowState.DOWNLOADED)

            signed_path = self.signing_pipeline.resign(
                request.environment, instrumented_path, request.credentials, variables
            )
            self._transition(WorkflowState.SIGNED)

            signed_response = uploader.upload_signed_apk(signed_path, mapping_path, upload_request)
            self._transition(WorkflowState.COMPLETED)

            console.print("[green]TestFairy upload completed.[/green]")
            return WorkflowResult(
                success=True,
                state=self.state.value,
                build_url=signed_response.get("build_url"),
                instrumented_url=instrumented_url,
            )

        except TestFairyError as exc:
            return self._fail(exc, instrumented_url)
        except Exception as exc:
            return self._fail(TestFairyError(f"Unexpected error: {exc}"), instrumented_url, cause=exc)

    def _fail(
        self,
        exc: TestFairyError,
        instrumented_url: Optional[str],
        cause: Optional[BaseException] = None,
    ) -> WorkflowResult:
        failed_in = self.state.value
        self._transition(WorkflowState.FAILED)
        console.print(f"[bold red]Error:[/bold red] {exc}")
        logger.error("%s (after step '%s')", exc, failed_in)
        logger.info("Failure trace", exc_info=cause or exc)
        return WorkflowResult(
            success=False,
            state=self.state.value,
            instrumented_url=instrumented_url,
            error=str(exc),
        )
