"""Build steps exposed to the CI host."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console

from .agent import LocalChannel, execute_remote
from .errors import TestFairyError
from .models import BuildContext, SigningCredentials, UploadRequest, WorkflowRequest, WorkflowResult
from .services.settings import SettingsStore
from .services.validation import ConfigIssue, ValidationService

console = Console()
logger = logging.getLogger("testfairyuploader")


@dataclass
class StepContext:
    upload_request: UploadRequest
    credentials: SigningCredentials
    build: BuildContext
    settings_store: SettingsStore
    channel: Any = None
    verbose: bool = False


@dataclass(frozen=True)
class BuildStep:
    name: str
    display_name: str
    validate_config: Callable[[StepContext], List[ConfigIssue]]
    execute: Callable[[StepContext], WorkflowResult]


def validate_android_config(context: StepContext) -> List[ConfigIssue]:
    service = ValidationService(command_runner=None, logger=logger)
    return service.validate_config(context.upload_request, context.credentials)


def execute_android(context: StepContext) -> WorkflowResult:
    if context.build.upstream_failed:
        logger.info("Build already failed, skipping TestFairy upload.")
        return WorkflowResult(
            success=False,
            state="completed",
            error="Skipped because the build has already failed.",
        )

    channel = context.channel or LocalChannel()
    try:
        environment = context.settings_store.get_environment()
        request = WorkflowRequest(
            upload_request=context.upload_request,
            credentials=context.credentials,
            environment=environment,
            build=context.build,
        )
        return execute_remote(channel, request, verbose=context.verbose)
    except TestFairyError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        logger.error(str(exc))
        logger.info("Failure trace", exc_info=exc)
        return WorkflowResult(success=False, state="failed", error=str(exc))


BUILD_STEPS: Dict[str, BuildStep] = {
    "testfairy-android": BuildStep(
        name="testfairy-android",
        display_name="TestFairy Android Uploader",
        validate_config=validate_android_config,
        execute=execute_android,
    ),
}


def get_build_step(name: str) -> Optional[BuildStep]:
    return BUILD_STEPS.get(name)
