"""Shared domain models for TestFairy Uploader."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class Secret:
    """Opaque holder for a sensitive value.

    The plaintext is only reachable through ``get_plain_text`` so that
    secrets never leak through ``str()``, ``repr()`` or log formatting.
    """

    __slots__ = ("_value",)

    MASK = "********"

    def __init__(self, value: Optional[str] = None):
        self._value = value or ""

    def get_plain_text(self) -> str:
        return self._value

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other) -> bool:
        return isinstance(other, Secret) and other._value == self._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"Secret({self.MASK})"

    def __str__(self) -> str:
        return self.MASK


@dataclass(frozen=True)
class BuildEnvironment:
    """External Android tools, and optional jarsigner algorithms, used for re-signing."""

    jarsigner_path: str
    zipalign_path: str
    sigalg: str = ""
    digestalg: str = ""


@dataclass(frozen=True)
class UploadRequest:
    """Build step options sent to TestFairy with each upload."""

    api_key: Secret
    app_file: str
    mapping_file: str = ""
    testers_groups: str = ""
    notify_testers: bool = False
    auto_update: bool = False
    max_duration: str = "10m"
    record_on_background: bool = False
    data_only_wifi: bool = False
    video_enabled: bool = True
    screenshot_interval: str = "1"
    video_quality: str = "high"
    advanced_options: str = ""
    cpu: bool = True
    memory: bool = True
    network: bool = False
    logs: bool = True
    phone_signal: bool = False
    wifi: bool = False
    gps: bool = False
    battery: bool = False
    opengl: bool = False

    def metrics(self) -> List[str]:
        flags = (
            ("cpu", self.cpu),
            ("memory", self.memory),
            ("network", self.network),
            ("logcat", self.logs),
            ("phone-signal", self.phone_signal),
            ("wifi", self.wifi),
            ("gps", self.gps),
            ("battery", self.battery),
            ("opengl", self.opengl),
        )
        return [name for name, enabled in flags if enabled]

    def options(self) -> List[str]:
        options = []
        if self.record_on_background:
            options.append("record-on-background")
        if self.data_only_wifi:
            options.append("data-only-wifi")
        return options

    def to_dict(self) -> Dict[str, Any]:
        data = {key: getattr(self, key) for key in self.__dataclass_fields__}
        data["api_key"] = self.api_key.get_plain_text()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadRequest":
        values = dict(data)
        values["api_key"] = Secret(values.get("api_key"))
        return cls(**values)


@dataclass(frozen=True)
class SigningCredentials:
    keystore_path: str
    storepass: Secret
    alias: Secret
    keypass: Secret = field(default_factory=Secret)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keystore_path": self.keystore_path,
            "storepass": self.storepass.get_plain_text(),
            "alias": self.alias.get_plain_text(),
            "keypass": self.keypass.get_plain_text(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SigningCredentials":
        return cls(
            keystore_path=data.get("keystore_path") or "",
            storepass=Secret(data.get("storepass")),
            alias=Secret(data.get("alias")),
            keypass=Secret(data.get("keypass")),
        )


@dataclass(frozen=True)
class ChangeSetEntry:
    message: str
    author: str


@dataclass(frozen=True)
class BuildContext:
    """What the CI host knows about the running build."""

    variables: Dict[str, str]
    artifacts_dir: Optional[str] = None
    change_set: List[ChangeSetEntry] = field(default_factory=list)
    upstream_result: Optional[str] = None

    @property
    def upstream_failed(self) -> bool:
        return self.upstream_result == "FAILURE"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildContext":
        return cls(
            variables=dict(data.get("variables") or {}),
            artifacts_dir=data.get("artifacts_dir"),
            change_set=[ChangeSetEntry(**entry) for entry in data.get("change_set") or []],
            upstream_result=data.get("upstream_result"),
        )


@dataclass(frozen=True)
class WorkflowRequest:
    """Self-contained message sent to the agent that runs the workflow."""

    upload_request: UploadRequest
    credentials: SigningCredentials
    environment: BuildEnvironment
    build: BuildContext

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_request": self.upload_request.to_dict(),
            "credentials": self.credentials.to_dict(),
            "environment": asdict(self.environment),
            "build": self.build.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowRequest":
        return cls(
            upload_request=UploadRequest.from_dict(data["upload_request"]),
            credentials=SigningCredentials.from_dict(data["credentials"]),
            environment=BuildEnvironment(**data["environment"]),
            build=BuildContext.from_dict(data["build"]),
        )


@dataclass
class WorkflowResult:
    success: bool
    state: str
    build_url: Optional[str] = None
    instrumented_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowResult":
        return cls(**data)
