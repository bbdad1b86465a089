import pytest

from testfairyuploader.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("invalid_apk", command="jarsigner -verify app.apk")

    assert "the following command failed: jarsigner -verify app.apk" in message
    assert "Suggested action:" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError):
        actionable_error("does_not_exist")
