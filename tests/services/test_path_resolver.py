import pytest

from testfairyuploader.errors import MissingFileError
from testfairyuploader.services.path_resolver import PathResolver


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None


def test_resolve_empty_required_path_fails():
    resolver = PathResolver(logger=DummyLogger())

    with pytest.raises(MissingFileError):
        resolver.resolve("", {}, required=True, label="APK file")


def test_resolve_empty_optional_path_returns_none():
    resolver = PathResolver(logger=DummyLogger())

    assert resolver.resolve("", {}, required=False) is None
    assert resolver.resolve(None, {}, required=False) is None


def test_resolve_expands_build_variables(tmp_path):
    apk = tmp_path / "out" / "app.apk"
    apk.parent.mkdir()
    apk.write_bytes(b"apk")
    resolver = PathResolver(logger=DummyLogger())

    resolved = resolver.resolve("${WORKSPACE}/out/$APK_NAME", {"WORKSPACE": str(tmp_path), "APK_NAME": "app.apk"}, required=True)

    assert resolved == str(apk)


def test_resolve_missing_required_names_both_paths(tmp_path):
    resolver = PathResolver(logger=DummyLogger())

    with pytest.raises(MissingFileError) as excinfo:
        resolver.resolve("$WORKSPACE/missing.jks", {"WORKSPACE": str(tmp_path)}, required=True, label="keystore file")

    message = str(excinfo.value)
    assert f"{tmp_path}/missing.jks" in message
    assert "$WORKSPACE/missing.jks" in message


def test_resolve_missing_optional_returns_none(tmp_path):
    resolver = PathResolver(logger=DummyLogger())

    assert resolver.resolve(str(tmp_path / "mapping.txt"), {}, required=False) is None


def test_expand_leaves_unknown_variables_untouched():
    assert PathResolver.expand("$UNKNOWN/app.apk", {}) == "$UNKNOWN/app.apk"
