#!/usr/bin/env python3
"""Command-line interface for the Sneaker Vault secret store."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from sneaker_vault import __version__
from sneaker_vault.clients.filesystem import write_bytes_atomic
from sneaker_vault.clients.local import generate_master_key
from sneaker_vault.config import SneakerConfig, parse_context
from sneaker_vault.exceptions import (
    AuthenticationError,
    CompositeError,
    ConfigurationError,
    ContextMismatchError,
    CorruptArchiveError,
    KeyServiceError,
    NotFoundError,
    SneakerError,
    StoreError,
    UnsupportedFormatError,
    ValidationError,
)
from sneaker_vault.models import Secret
from sneaker_vault.secret_manager import SecretManager
from sneaker_vault.validation_utils import validate_secret_path

logger = logging.getLogger(__name__)

_STDIO = "-"

# Most specific first
_ERROR_CODES: tuple[tuple[type[SneakerError], str], ...] = (
    (ValidationError, "validation_error"),
    (ConfigurationError, "configuration_error"),
    (NotFoundError, "not_found"),
    (ContextMismatchError, "context_mismatch"),
    (AuthenticationError, "authentication_failed"),
    (CorruptArchiveError, "corrupt_archive"),
    (UnsupportedFormatError, "unsupported_format"),
    (CompositeError, "batch_failed"),
    (KeyServiceError, "key_service_error"),
    (StoreError, "store_error"),
)


class SneakerCLI:
    """Command-line interface for the Sneaker Vault system."""

    def __init__(self) -> None:
        """Initialize the CLI."""
        self._parser = self._create_parser()
        self._pretty = False

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser.

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog="sneaker-vault",
            description="Sneaker Vault - envelope-encrypted secrets in S3 with KMS",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Environment:
  SNEAKER_REGION        AWS region of the key and bucket
  SNEAKER_KEY_ID        KMS key used to encrypt secrets
  SNEAKER_S3_PATH       Where secrets live (s3://bucket/path or file:///dir)
  SNEAKER_ENC_CONTEXT   Encryption context for stored secrets (k1=v1,k2=v2)
  SNEAKER_MASTER_KEY    Base64 master key for local mode (instead of KMS)
  SNEAKER_MAX_WORKERS   Concurrent workers for batch commands (default: 10)

Examples:
  # List secrets
  sneaker-vault ls
  sneaker-vault ls "db/*,*.key"

  # Upload a file as a secret (use - for stdin)
  sneaker-vault upload ./password.txt db/password

  # Pack matching secrets into an archive (use - for stdout)
  sneaker-vault pack "db/*" secrets.snk --context env=prod

  # Unpack one entry to stdout, or every entry into a directory
  sneaker-vault unpack secrets.snk - --entry db/password --context env=prod
  sneaker-vault unpack secrets.snk ./out --context env=prod

  # Re-encrypt secrets under fresh data keys
  sneaker-vault rotate "db/*"

  # Generate a master key for local mode
  sneaker-vault keygen
            """,
        )

        parser.add_argument(
            "--pretty",
            action="store_true",
            help="Pretty-print JSON outputs",
        )
        parser.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Log progress to stderr",
        )

        subparsers = parser.add_subparsers(
            dest="command",
            help="Available commands",
        )

        ls_parser = subparsers.add_parser(
            "ls",
            help="List stored secrets",
        )
        ls_parser.add_argument(
            "pattern",
            nargs="?",
            default="",
            help="Comma-separated glob patterns (default: all)",
        )

        upload_parser = subparsers.add_parser(
            "upload",
            help="Encrypt and store a file",
        )
        upload_parser.add_argument("file", help="File to upload (- for stdin)")
        upload_parser.add_argument("path", help="Secret path")

        rm_parser = subparsers.add_parser(
            "rm",
            help="Delete a stored secret",
        )
        rm_parser.add_argument("path", help="Secret path")

        pack_parser = subparsers.add_parser(
            "pack",
            help="Pack matching secrets into an encrypted archive",
        )
        pack_parser.add_argument("pattern", help="Comma-separated glob patterns")
        pack_parser.add_argument("file", help="Archive to write (- for stdout)")
        pack_parser.add_argument(
            "-c",
            "--context",
            help="Encryption context for the archive (k1=v1,k2=v2)",
        )

        unpack_parser = subparsers.add_parser(
            "unpack",
            help="Decrypt an archive",
        )
        unpack_parser.add_argument("file", help="Archive to read (- for stdin)")
        unpack_parser.add_argument(
            "path",
            help="Output directory, or output file (- for stdout) with --entry",
        )
        unpack_parser.add_argument(
            "-e",
            "--entry",
            help="Extract only this entry",
        )
        unpack_parser.add_argument(
            "-c",
            "--context",
            help="Encryption context the archive was packed with (k1=v1,k2=v2)",
        )

        rotate_parser = subparsers.add_parser(
            "rotate",
            help="Re-encrypt stored secrets under fresh data keys",
        )
        rotate_parser.add_argument(
            "pattern",
            nargs="?",
            default="",
            help="Comma-separated glob patterns (default: all)",
        )

        subparsers.add_parser(
            "keygen",
            help="Generate a base64 master key for local mode",
        )

        subparsers.add_parser(
            "version",
            help="Show version information",
        )

        return parser

    def _configure_logging(self, verbose: bool) -> None:
        logging.basicConfig(
            level=logging.INFO if verbose else logging.WARNING,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            stream=sys.stderr,
        )

    def _get_manager(self) -> SecretManager:
        """Build a SecretManager from the environment."""
        return SecretManager.from_config(SneakerConfig.from_environment())

    def _print_json(self, payload: dict[str, Any]) -> None:
        """Print a JSON payload to stdout."""
        print(json.dumps(payload, indent=2 if self._pretty else None))

    def _print_error(self, *, message: str, code: str = "error", extra: dict[str, Any] | None = None) -> None:
        """Print a JSON error to stderr and exit non-zero."""
        error_obj = {
            "success": False,
            "error_code": code,
            "message": message,
        }
        if extra:
            error_obj["data"] = extra
        print(json.dumps(error_obj, indent=2), file=sys.stderr)
        sys.exit(1)

    def _report_error(self, error: SneakerError) -> None:
        """Map a library error to its JSON error code and exit."""
        code = next(
            (code for error_type, code in _ERROR_CODES if isinstance(error, error_type)),
            "error"
        )
        extra = None
        if isinstance(error, CompositeError):
            extra = {
                "failed": {item: str(e) for item, e in error.failures.items()},
                "succeeded": error.succeeded,
                "skipped": error.skipped,
            }
        elif isinstance(error, CorruptArchiveError) and error.entry_name:
            extra = {"entry": error.entry_name}
        self._print_error(message=str(error), code=code, extra=extra)

    def _read_input(self, file: str) -> bytes:
        """Read bytes from a file, or stdin for ``-``."""
        if file == _STDIO:
            return sys.stdin.buffer.read()
        try:
            return Path(file).read_bytes()
        except FileNotFoundError as e:
            raise ValidationError(f"File not found: {file}") from e
        except OSError as e:
            raise ValidationError(f"Failed to read {file}: {e}") from e

    def _write_output(self, file: str, data: bytes) -> None:
        """Write bytes atomically to a file, or stdout for ``-``."""
        if file == _STDIO:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
            return
        try:
            write_bytes_atomic(Path(file), data)
        except OSError as e:
            raise ValidationError(f"Failed to write {file}: {e}") from e

    def _unpack_targets(self, output_dir: Path, secrets: list[Secret]) -> list[tuple[Path, bytes]]:
        """Map archive entries to files under ``output_dir``.

        Every target is checked before anything is written, so a bad entry
        leaves the directory untouched.

        Raises:
            ValidationError: If an entry would land outside ``output_dir`` or
                collides with another entry or an existing file
        """
        root = output_dir.resolve()
        if root.exists() and not root.is_dir():
            raise ValidationError(f"Output path is not a directory: {output_dir}")

        targets: dict[Path, bytes] = {}
        for secret in secrets:
            target = root.joinpath(*secret.path.split("/")).resolve()
            if target == root or root not in target.parents:
                raise ValidationError(f"Archive entry {secret.path!r} escapes the output directory")
            if target.is_dir():
                raise ValidationError(f"Archive entry {secret.path!r} would replace a directory")
            targets[target] = secret.plaintext

        for target in targets:
            for parent in target.parents:
                if parent == root:
                    break
                if parent in targets or (parent.exists() and not parent.is_dir()):
                    raise ValidationError(f"Archive entry {target.relative_to(root)} is nested under a file")

        return list(targets.items())

    def _handle_ls(self, args: argparse.Namespace) -> None:
        """Handle ls command."""
        self._handle_ls_with_dependencies(
            manager=self._get_manager(),
            pattern=args.pattern
        )

    def _handle_ls_with_dependencies(
        self,
        *,
        manager: SecretManager,
        pattern: str
    ) -> None:
        """Handle ls command with explicit dependencies.

        Args:
            manager: Secret manager to query
            pattern: Comma-separated glob patterns
        """
        secrets = manager.list(pattern)
        self._print_json({
            "success": True,
            "command": "ls",
            "count": len(secrets),
            "secrets": [secret.to_dict() for secret in secrets],
        })

    def _handle_upload(self, args: argparse.Namespace) -> None:
        """Handle upload command."""
        self._handle_upload_with_dependencies(
            manager=self._get_manager(),
            file=args.file,
            path=args.path
        )

    def _handle_upload_with_dependencies(
        self,
        *,
        manager: SecretManager,
        file: str,
        path: str
    ) -> None:
        """Handle upload command with explicit dependencies.

        Args:
            manager: Secret manager to store into
            file: Source file (- for stdin)
            path: Secret path
        """
        validate_secret_path(path)
        logger.info(f"uploading {file}")
        manager.upload(path, self._read_input(file))
        self._print_json({
            "success": True,
            "command": "upload",
            "path": path,
        })

    def _handle_rm(self, args: argparse.Namespace) -> None:
        """Handle rm command."""
        self._handle_rm_with_dependencies(
            manager=self._get_manager(),
            path=args.path
        )

    def _handle_rm_with_dependencies(
        self,
        *,
        manager: SecretManager,
        path: str
    ) -> None:
        """Handle rm command with explicit dependencies."""
        logger.info(f"deleting {path}")
        manager.remove(path)
        self._print_json({
            "success": True,
            "command": "rm",
            "path": path,
        })

    def _handle_pack(self, args: argparse.Namespace) -> None:
        """Handle pack command."""
        self._handle_pack_with_dependencies(
            manager=self._get_manager(),
            pattern=args.pattern,
            file=args.file,
            context=parse_context(args.context)
        )

    def _handle_pack_with_dependencies(
        self,
        *,
        manager: SecretManager,
        pattern: str,
        file: str,
        context: Optional[dict[str, str]]
    ) -> None:
        """Handle pack command with explicit dependencies.

        Args:
            manager: Secret manager to read from
            pattern: Comma-separated glob patterns selecting secrets
            file: Archive destination (- for stdout)
            context: Encryption context for the archive
        """
        paths = [secret.path for secret in manager.list(pattern)]
        logger.info(f"packing {paths}")

        archive = manager.pack(paths, context)
        self._write_output(file, archive)

        # stdout carries the archive itself
        if file != _STDIO:
            self._print_json({
                "success": True,
                "command": "pack",
                "file": file,
                "count": len(paths),
                "paths": paths,
            })

    def _handle_unpack(self, args: argparse.Namespace) -> None:
        """Handle unpack command."""
        self._handle_unpack_with_dependencies(
            manager=self._get_manager(),
            file=args.file,
            path=args.path,
            entry=args.entry,
            context=parse_context(args.context)
        )

    def _handle_unpack_with_dependencies(
        self,
        *,
        manager: SecretManager,
        file: str,
        path: str,
        entry: str | None,
        context: Optional[dict[str, str]]
    ) -> None:
        """Handle unpack command with explicit dependencies.

        Args:
            manager: Secret manager providing the key service
            file: Archive source (- for stdin)
            path: Output directory, or output file with ``entry``
            entry: Single entry to extract
            context: Encryption context the archive was packed with
        """
        archive = self._read_input(file)

        if entry:
            self._write_output(path, manager.unpack_entry(archive, entry, context))
            if path != _STDIO:
                self._print_json({
                    "success": True,
                    "command": "unpack",
                    "entry": entry,
                    "file": path,
                })
            return

        if path == _STDIO:
            raise ValidationError("Unpacking a whole archive needs an output directory; use --entry for stdout")

        secrets = manager.unpack(archive, context)
        for target, plaintext in self._unpack_targets(Path(path), secrets):
            self._write_output(str(target), plaintext)

        self._print_json({
            "success": True,
            "command": "unpack",
            "directory": path,
            "count": len(secrets),
            "paths": [secret.path for secret in secrets],
        })

    def _handle_rotate(self, args: argparse.Namespace) -> None:
        """Handle rotate command."""
        self._handle_rotate_with_dependencies(
            manager=self._get_manager(),
            pattern=args.pattern
        )

    def _handle_rotate_with_dependencies(
        self,
        *,
        manager: SecretManager,
        pattern: str
    ) -> None:
        """Handle rotate command with explicit dependencies.

        Args:
            manager: Secret manager to rotate
            pattern: Comma-separated glob patterns (empty means all)
        """
        result = manager.rotate(pattern, progress=lambda p: print(f"rotating {p}", file=sys.stderr))
        self._print_json({
            "success": True,
            "command": "rotate",
            **result.to_dict(),
        })

    def run(self, args: Optional[list[str]] = None) -> None:
        """Run the CLI with given arguments."""
        try:
            parsed_args = self._parser.parse_args(args)
            self._pretty = bool(getattr(parsed_args, "pretty", False))
            self._configure_logging(bool(getattr(parsed_args, "verbose", False)))

            if not parsed_args.command:
                self._print_error(message="No command specified", code="missing_command")

            if parsed_args.command == "ls":
                self._handle_ls(parsed_args)
            elif parsed_args.command == "upload":
                self._handle_upload(parsed_args)
            elif parsed_args.command == "rm":
                self._handle_rm(parsed_args)
            elif parsed_args.command == "pack":
                self._handle_pack(parsed_args)
            elif parsed_args.command == "unpack":
                self._handle_unpack(parsed_args)
            elif parsed_args.command == "rotate":
                self._handle_rotate(parsed_args)
            elif parsed_args.command == "keygen":
                self._print_json({
                    "success": True,
                    "command": "keygen",
                    "master_key": generate_master_key(),
                })
            elif parsed_args.command == "version":
                self._print_json({
                    "success": True,
                    "command": "version",
                    "version": __version__,
                })
            else:
                self._print_error(message=f"Unknown command: {parsed_args.command}", code="unknown_command")

        except SneakerError as e:
            self._report_error(e)
        except KeyboardInterrupt:
            self._print_error(message="Operation cancelled by user", code="cancelled")


def main() -> None:
    """Main entry point for the CLI."""
    cli = SneakerCLI()
    cli.run()


if __name__ == "__main__":
    main()
