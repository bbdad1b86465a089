import subprocess

from testfairyuploader.errors import TestFairyError
from testfairyuploader.services.scm import FIELD_SEPARATOR, RECORD_SEPARATOR, ChangeSetCollector


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeCommandRunner:
    def __init__(self, stdout="", error=None):
        self.stdout = stdout
        self.error = error
        self.calls = []

    def run(self, cmd, **_kwargs):
        self.calls.append(cmd)
        if self.error:
            raise self.error
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr="")


def _log(*records):
    return "".join(f"{msg}{FIELD_SEPARATOR}{author}{RECORD_SEPARATOR}\n" for msg, author in records)


def test_collect_without_previous_commit_is_empty():
    runner = FakeCommandRunner()
    collector = ChangeSetCollector(runner, DummyLogger())

    assert collector.collect({"GIT_COMMIT": "abc"}) == []
    assert runner.calls == []


def test_collect_reads_range_oldest_first():
    runner = FakeCommandRunner(stdout=_log(("Second", "lee"), ("First", "dana")))
    collector = ChangeSetCollector(runner, DummyLogger())

    entries = collector.collect({"GIT_PREVIOUS_SUCCESSFUL_COMMIT": "111", "GIT_COMMIT": "222"})

    assert runner.calls[0][-1] == "111..222"
    assert [(entry.message, entry.author) for entry in entries] == [("First", "dana"), ("Second", "lee")]


def test_collect_swallows_git_failures():
    runner = FakeCommandRunner(error=TestFairyError("not a git repository"))
    collector = ChangeSetCollector(runner, DummyLogger())

    assert collector.collect({"GIT_PREVIOUS_SUCCESSFUL_COMMIT": "111"}) == []
