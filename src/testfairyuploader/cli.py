import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    MAX_DURATION_CHOICES,
    SCREENSHOT_INTERVAL_CHOICES,
    UPSTREAM_RESULTS,
    VIDEO_QUALITY_CHOICES,
)
from .errors import TestFairyError
from .models import BuildContext, Secret, SigningCredentials, UploadRequest
from .services.command_runner import CommandRunner
from .services.config_loader import ConfigLoader
from .services.scm import ChangeSetCollector
from .services.settings import SettingsStore
from .services.validation import ValidationService
from .steps import BUILD_STEPS, StepContext

DEFAULT_CONFIG_FILE = ".testfairy.yml"


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _configure_logging(logger: logging.Logger, verbose: bool, log_file):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


@click.group()
def main():
    """Upload Android builds to TestFairy and re-sign the instrumented APK."""


@main.command()
@click.option(
    "--step",
    "step_name",
    type=click.Choice(sorted(BUILD_STEPS)),
    default="testfairy-android",
    show_default=True,
    help="Build step to run.",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--api-key", envvar="TESTFAIRY_API_KEY", help="TestFairy API key.")
@click.option("--app-file", required=False, help="APK to upload. May reference $VARIABLES.")
@click.option("--mapping-file", required=False, help="Optional ProGuard mapping (symbols) file.")
@click.option("--testers-groups", required=False, help="Comma separated tester groups.")
@click.option("--notify-testers/--no-notify-testers", default=None, help="Email testers about the build.")
@click.option("--auto-update/--no-auto-update", default=None, help="Upgrade installed older builds.")
@click.option(
    "--max-duration",
    type=click.Choice(list(MAX_DURATION_CHOICES)),
    default=None,
    help="Maximum session recording length.",
)
@click.option("--record-on-background/--no-record-on-background", default=None)
@click.option("--data-only-wifi/--no-data-only-wifi", default=None)
@click.option("--video/--no-video", "video_enabled", default=None, help="Record session video.")
@click.option(
    "--screenshot-interval",
    type=click.Choice(list(SCREENSHOT_INTERVAL_CHOICES)),
    default=None,
    help="Seconds between screenshots.",
)
@click.option(
    "--video-quality",
    type=click.Choice(list(VIDEO_QUALITY_CHOICES)),
    default=None,
)
@click.option("--advanced-options", required=False, help="Free form advanced options.")
@click.option("--cpu/--no-cpu", default=None)
@click.option("--memory/--no-memory", default=None)
@click.option("--network/--no-network", default=None)
@click.option("--logs/--no-logs", default=None)
@click.option("--phone-signal/--no-phone-signal", default=None)
@click.option("--wifi/--no-wifi", default=None)
@click.option("--gps/--no-gps", default=None)
@click.option("--battery/--no-battery", default=None)
@click.option("--opengl/--no-opengl", default=None)
@click.option("--keystore-path", required=False, help="Keystore used to re-sign the APK.")
@click.option("--storepass", envvar="TESTFAIRY_STOREPASS", help="Keystore password.")
@click.option("--alias", envvar="TESTFAIRY_ALIAS", help="Key alias.")
@click.option("--keypass", envvar="TESTFAIRY_KEYPASS", help="Key password, if different.")
@click.option(
    "--artifacts-dir",
    required=False,
    type=click.Path(),
    help="Build artifacts directory searched for a testfairy_change_log file.",
)
@click.option(
    "--upstream-result",
    envvar="BUILD_RESULT",
    type=click.Choice(UPSTREAM_RESULTS, case_sensitive=False),
    default=None,
    help="Result of the build so far. FAILURE skips the upload.",
)
@click.option("--settings-file", type=click.Path(), help="Global settings file with tool paths.")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def upload(
    step_name,
    config,
    api_key,
    app_file,
    mapping_file,
    testers_groups,
    notify_testers,
    auto_update,
    max_duration,
    record_on_background,
    data_only_wifi,
    video_enabled,
    screenshot_interval,
    video_quality,
    advanced_options,
    cpu,
    memory,
    network,
    logs,
    phone_signal,
    wifi,
    gps,
    battery,
    opengl,
    keystore_path,
    storepass,
    alias,
    keypass,
    artifacts_dir,
    upstream_result,
    settings_file,
    verbose,
    log_file,
):
    """Upload an APK, re-sign the instrumented build and upload it again."""
    logger = logging.getLogger("testfairyuploader")

    try:
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = ConfigLoader().load(resolved_config)
    except TestFairyError as exc:
        raise click.ClickException(str(exc)) from exc

    def option(value, key, default=None):
        return _resolve_option(value, config_values, key, default=default)

    verbose = bool(option(verbose, "verbose", default=False))
    _configure_logging(logger, verbose, option(log_file, "log_file"))

    upload_request = UploadRequest(
        api_key=Secret(api_key),
        app_file=option(app_file, "app_file", default=""),
        mapping_file=option(mapping_file, "mapping_file", default=""),
        testers_groups=option(testers_groups, "testers_groups", default=""),
        notify_testers=bool(option(notify_testers, "notify_testers", default=False)),
        auto_update=bool(option(auto_update, "auto_update", default=False)),
        max_duration=str(option(max_duration, "max_duration", default="10m")),
        record_on_background=bool(option(record_on_background, "record_on_background", default=False)),
        data_only_wifi=bool(option(data_only_wifi, "data_only_wifi", default=False)),
        video_enabled=bool(option(video_enabled, "video_enabled", default=True)),
        screenshot_interval=str(option(screenshot_interval, "screenshot_interval", default="1")),
        video_quality=str(option(video_quality, "video_quality", default="high")),
        advanced_options=option(advanced_options, "advanced_options", default=""),
        cpu=bool(option(cpu, "cpu", default=True)),
        memory=bool(option(memory, "memory", default=True)),
        network=bool(option(network, "network", default=False)),
        logs=bool(option(logs, "logs", default=True)),
        phone_signal=bool(option(phone_signal, "phone_signal", default=False)),
        wifi=bool(option(wifi, "wifi", default=False)),
        gps=bool(option(gps, "gps", default=False)),
        battery=bool(option(battery, "battery", default=False)),
        opengl=bool(option(opengl, "opengl", default=False)),
    )
    credentials = SigningCredentials(
        keystore_path=option(keystore_path, "keystore_path", default=""),
        storepass=Secret(storepass),
        alias=Secret(alias),
        keypass=Secret(keypass),
    )

    variables = dict(os.environ)
    upstream_result = upstream_result.upper() if upstream_result else None
    change_set = []
    if upstream_result != "FAILURE":
        change_set = ChangeSetCollector(CommandRunner(logger=logger), logger).collect(variables)
    step = BUILD_STEPS[step_name]
    context = StepContext(
        upload_request=upload_request,
        credentials=credentials,
        build=BuildContext(
            variables=variables,
            artifacts_dir=option(artifacts_dir, "artifacts_dir"),
            change_set=change_set,
            upstream_result=upstream_result,
        ),
        settings_store=SettingsStore(settings_file, logger=logger),
        verbose=verbose,
    )

    issues = step.validate_config(context)
    for issue in issues:
        if not issue.is_error:
            logger.warning("%s: %s", issue.field, issue.message)
    errors = [f"{issue.field}: {issue.message}" for issue in issues if issue.is_error]
    if errors:
        raise click.ClickException("Invalid configuration. " + "; ".join(errors))

    result = step.execute(context)
    if result.success and result.build_url:
        click.echo(f"Build URL: {result.build_url}")

    raise SystemExit(result.exit_code)


@main.command()
@click.option("--jarsigner-path", required=False, help="jarsigner executable (default: jarsigner).")
@click.option("--zipalign-path", required=False, help="zipalign executable (default: zipalign).")
@click.option("--sigalg", required=False, help="jarsigner -sigalg value, e.g. SHA256withRSA. Empty clears it.")
@click.option("--digestalg", required=False, help="jarsigner -digestalg value, e.g. SHA-256. Empty clears it.")
@click.option("--settings-file", type=click.Path(), help="Global settings file with tool paths.")
def configure(jarsigner_path, zipalign_path, sigalg, digestalg, settings_file):
    """Save the jarsigner and zipalign settings used by every build."""
    logger = logging.getLogger("testfairyuploader")
    validation_service = ValidationService(command_runner=None, logger=logger)

    for name, path in (("jarsigner", jarsigner_path), ("zipalign", zipalign_path)):
        if not path:
            continue
        try:
            validation_service.is_valid_program(path, name)
        except TestFairyError as exc:
            logger.warning(str(exc))

    store = SettingsStore(settings_file, logger=logger)
    try:
        store.save(
            jarsigner_path=jarsigner_path,
            zipalign_path=zipalign_path,
            sigalg=sigalg,
            digestalg=digestalg,
        )
        environment = store.get_environment()
    except TestFairyError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"jarsigner: {environment.jarsigner_path}")
    click.echo(f"zipalign: {environment.zipalign_path}")
    if environment.sigalg:
        click.echo(f"sigalg: {environment.sigalg}")
    if environment.digestalg:
        click.echo(f"digestalg: {environment.digestalg}")


if __name__ == "__main__":
    main()
