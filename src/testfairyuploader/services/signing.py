"""Re-signing of instrumented APKs with the developer's keystore."""

import os
import zipfile
from typing import List, Mapping, Optional

from testfairyuploader.constants import ZIPALIGN_BOUNDARY
from testfairyuploader.errors import MissingCredentialError, SigningFailedError
from testfairyuploader.errors_catalog import actionable_error
from testfairyuploader.models import BuildEnvironment, SigningCredentials
from testfairyuploader.services.path_resolver import PathResolver

SIGNATURE_SUFFIXES = (".SF", ".RSA", ".DSA", ".EC")


class SigningPipeline:
    """Strips the old signature, signs with jarsigner and aligns with zipalign."""

    def __init__(self, command_runner, path_resolver: PathResolver, logger):
        self.command_runner = command_runner
        self.path_resolver = path_resolver
        self.logger = logger

    def check_credentials(
        self,
        credentials: SigningCredentials,
        variables: Mapping[str, str],
    ) -> str:
        keystore = self.path_resolver.resolve(
            credentials.keystore_path, variables, required=True, label="keystore file"
        )
        if not credentials.storepass:
            raise MissingCredentialError(
                actionable_error(
                    "missing_credential",
                    label="Storepass",
                    option="storepass",
                    envvar="TESTFAIRY_STOREPASS",
                )
            )
        if not credentials.alias:
            raise MissingCredentialError(
                actionable_error(
                    "missing_credential",
                    label="Alias",
                    option="alias",
                    envvar="TESTFAIRY_ALIAS",
                )
            )
        return keystore

    def resign(
        self,
        environment: BuildEnvironment,
        instrumented_apk_path: str,
        credentials: SigningCredentials,
        variables: Optional[Mapping[str, str]] = None,
    ) -> str:
        keystore = self.check_credentials(credentials, variables or {})

        base, _ = os.path.splitext(instrumented_apk_path)
        unsigned_path = f"{base}-unsigned.apk"
        signed_path = f"{base}-signed.apk"
        secrets = [
            credentials.storepass.get_plain_text(),
            credentials.keypass.get_plain_text(),
        ]

        self.logger.info("Signing instrumented APK with keystore %s", keystore)
        self.strip_signature(instrumented_apk_path, unsigned_path)

        self._run(self.build_sign_command(environment, unsigned_path, keystore, credentials), secrets)
        self._run([environment.jarsigner_path, "-verify", unsigned_path], secrets)

        if os.path.exists(signed_path):
            os.remove(signed_path)
        self._run(
            [environment.zipalign_path, "-f", ZIPALIGN_BOUNDARY, unsigned_path, signed_path],
            secrets,
        )
        self._run([environment.zipalign_path, "-c", ZIPALIGN_BOUNDARY, signed_path], secrets)

        self.logger.info("Signed APK: %s", signed_path)
        return signed_path

    @staticmethod
    def build_sign_command(
        environment: BuildEnvironment,
        apk_path: str,
        keystore: str,
        credentials: SigningCredentials,
    ) -> List[str]:
        cmd = [
            environment.jarsigner_path,
            "-keystore",
            keystore,
            "-storepass",
            credentials.storepass.get_plain_text(),
        ]
        if credentials.keypass:
            cmd.extend(["-keypass", credentials.keypass.get_plain_text()])
        # jarsigner picks the algorithms from the key type unless told otherwise
        if environment.sigalg:
            cmd.extend(["-sigalg", environment.sigalg])
        if environment.digestalg:
            cmd.extend(["-digestalg", environment.digestalg])
        cmd.extend([apk_path, credentials.alias.get_plain_text()])
        return cmd

    @staticmethod
    def is_signature_entry(name: str) -> bool:
        if not name.upper().startswith("META-INF/"):
            return False
        entry = name[len("META-INF/"):]
        if "/" in entry:
            return False
        upper = entry.upper()
        return upper == "MANIFEST.MF" or upper.endswith(SIGNATURE_SUFFIXES)

    def strip_signature(self, source_path: str, dest_path: str):
        try:
            with zipfile.ZipFile(source_path, "r") as source, zipfile.ZipFile(
                dest_path, "w"
            ) as dest:
                for member in source.infolist():
                    if self.is_signature_entry(member.filename):
                        self.logger.debug("Dropping signature entry %s", member.filename)
                        continue
                    # Keeps each entry's compression, stored resources must stay stored.
                    dest.writestr(member, source.read(member))
        except (zipfile.BadZipFile, OSError) as exc:
            raise SigningFailedError(
                f"Could not prepare {source_path} for signing: {exc}"
            ) from exc

    def _run(self, cmd: List[str], secrets: List[str]):
        self.command_runner.run(
            cmd,
            check=True,
            capture_output=True,
            secrets=secrets,
            error_cls=SigningFailedError,
        )
