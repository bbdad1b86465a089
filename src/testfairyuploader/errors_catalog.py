"""Actionable error catalog for TestFairy Uploader."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_file": {
        "what": "Can't find a {label} in {path} the original path was {original}",
        "next": "Check the path and the environment variables it references.",
    },
    "missing_file_empty": {
        "what": "Can't find a {label}: no path configured.",
        "next": "Set the {label} path in the build step configuration.",
    },
    "missing_credential": {
        "what": "Missing {label}.",
        "next": "Provide it with --{option} or the {envvar} environment variable.",
    },
    "tool_not_found": {
        "what": "{name} not found or not executable: {path}",
        "next": "Install it or run `testfairyuploader configure --{name}-path <path>`.",
    },
    "invalid_apk": {
        "what": "Can't validate your apk, the following command failed: {command}",
        "next": "Make sure the APK is signed before uploading it.",
    },
    "upload_rejected": {
        "what": "TestFairy rejected the {action}: {message}",
        "next": "Check the API key and the upload options, then retry.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
