#!/usr/bin/env python3
"""Example demonstrating secret rotation."""

import tempfile

from sneaker_vault import CompositeError, SecretManager
from sneaker_vault.clients import FileSystemObjectStore, LocalKeyService, generate_master_key
from sneaker_vault.models import CipherUnit


def main() -> None:
    """Demonstrate rotating secrets to fresh data keys."""

    with tempfile.TemporaryDirectory() as temp_dir:
        print("Secret Rotation Example")
        print("=" * 50)

        store = FileSystemObjectStore(temp_dir)
        manager = SecretManager(
            LocalKeyService.from_base64(generate_master_key()),
            store,
            max_workers=4
        )

        print("\nUploading secrets...")
        for index in range(5):
            manager.upload(f"service{index}/password", f"password-{index}".encode())

        before = {
            secret.path: CipherUnit.from_bytes(store.get(secret.path)).wrapped_key
            for secret in manager.list()
        }

        print("\nRotating every secret...")
        try:
            result = manager.rotate(progress=lambda path: print(f"  rotating {path}"))
        except CompositeError as e:
            print(f"Some secrets failed to rotate:\n{e}")
            return

        print(f"\nRotated {len(result.rotated)} secret(s)")
        for path in sorted(result.rotated):
            wrapped = CipherUnit.from_bytes(store.get(path)).wrapped_key
            changed = "new data key" if wrapped != before[path] else "UNCHANGED"
            print(f"  {path}: {changed}, value {manager.read(path).decode()}")

        print("\nRotation example completed successfully!")


if __name__ == "__main__":
    main()
