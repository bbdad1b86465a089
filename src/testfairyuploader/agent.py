"""Execution boundary between the CI controller and the build agent.

Everything handed to the agent travels as JSON so that no live object
crosses the boundary: the controller serializes a ``WorkflowRequest``, the
agent rebuilds it, runs the workflow and answers with a plain result.
"""

import json
import logging
from typing import Any, Callable, Dict

from .core import WorkflowOrchestrator
from .errors import TestFairyError
from .models import WorkflowRequest, WorkflowResult

logger = logging.getLogger("testfairyuploader")

Handler = Callable[[Dict[str, Any]], Dict[str, Any]]


def run_workflow(payload: Dict[str, Any]) -> Dict[str, Any]:
    request = WorkflowRequest.from_dict(payload["request"])
    orchestrator = WorkflowOrchestrator(verbose=bool(payload.get("verbose")))
    return orchestrator.run(request).to_dict()


HANDLERS: Dict[str, Handler] = {
    "run_workflow": run_workflow,
}


class LocalChannel:
    """Runs agent handlers in-process while keeping the wire format honest."""

    def __init__(self, handlers: Dict[str, Handler] = None):
        self.handlers = handlers if handlers is not None else HANDLERS

    def call(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if name not in self.handlers:
            raise TestFairyError(f"Unknown agent call: {name}")

        message = json.loads(json.dumps({"call": name, "payload": payload}))
        try:
            response = {"ok": True, "value": self.handlers[message["call"]](message["payload"])}
        except TestFairyError as exc:
            response = {"ok": False, "error": str(exc), "kind": type(exc).__name__}
        except Exception as exc:
            logger.debug("Agent call %s failed", name, exc_info=True)
            response = {"ok": False, "error": str(exc), "kind": type(exc).__name__}

        reply = json.loads(json.dumps(response))
        if not reply["ok"]:
            raise TestFairyError(reply["error"])
        return reply["value"]


def execute_remote(channel, request: WorkflowRequest, verbose: bool = False) -> WorkflowResult:
    payload = {"request": request.to_dict(), "verbose": verbose}
    return WorkflowResult.from_dict(channel.call("run_workflow", payload))
