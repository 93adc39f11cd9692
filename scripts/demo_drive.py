#!/usr/bin/env python
"""Demo script exercising a live Drive backend.

Requires DRIVESTORE_CLIENT_ID/DRIVESTORE_CLIENT_SECRET and the DRIVE_* token
variables written by drivestore-setupstorage (environment or .env). Every
blob it creates is deleted again before it exits.
"""

from __future__ import annotations

import argparse
import logging
import threading
import uuid

from drivestore.core.storage import BlobNotFoundError, BlobStorage, get_blob_backend


def demo_round_trip(storage: BlobStorage, prefix: str) -> None:
    """Store, overwrite, fetch and delete a single blob."""
    print("=" * 70)
    print("Demo 1: Round trip")
    print("=" * 70)

    ref = f"{prefix}-doc1"
    storage.put(ref, b"hello")
    print(f"   ✓ Stored '{ref}'")

    storage.put(ref, b"world")
    print(f"   ✓ Overwrote '{ref}'")

    data = storage.get(ref)
    print(f"   ✓ Retrieved: {data.decode()}")

    storage.delete(ref)
    try:
        storage.get(ref)
    except BlobNotFoundError as e:
        print(f"   ✓ Deleted, fetch now fails: {e}")


def demo_listing(storage: BlobStorage, prefix: str, count: int) -> None:
    """Store a handful of blobs and walk the listing."""
    print("\n" + "=" * 70)
    print("Demo 2: Listing")
    print("=" * 70)

    refs = [f"{prefix}-item{i}" for i in range(count)]
    for ref in refs:
        storage.put(ref, ref.encode())
    print(f"   ✓ Stored {count} blobs")

    items = list(storage.iter_refs())
    total = sum(item.size for item in items)
    print(f"   ✓ appDataFolder holds {len(items)} files, {total} bytes of quota")

    for ref in refs:
        storage.delete(ref)
    print(f"   ✓ Cleaned up {count} blobs")


def demo_concurrent_store(storage: BlobStorage, prefix: str, workers: int) -> None:
    """Overwrite one name from several threads; a single file must remain."""
    print("\n" + "=" * 70)
    print("Demo 3: Concurrent overwrites")
    print("=" * 70)

    ref = f"{prefix}-shared"
    threads = [
        threading.Thread(target=storage.put, args=(ref, f"writer-{i}".encode()))
        for i in range(workers)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    print(f"   ✓ Final content: {storage.get(ref).decode()}")
    storage.delete(ref)


def main() -> int:
    parser = argparse.ArgumentParser(description="Exercise a live Drive storage backend")
    parser.add_argument("--backend", default="drive", help="Configured backend name")
    parser.add_argument("--count", type=int, default=5, help="Blobs to create for listing")
    parser.add_argument("--workers", type=int, default=4, help="Concurrent writers")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    storage = BlobStorage(get_blob_backend(args.backend))
    prefix = f"demo-{uuid.uuid4().hex[:8]}"

    demo_round_trip(storage, prefix)
    demo_listing(storage, prefix, args.count)
    demo_concurrent_store(storage, prefix, args.workers)

    print("\n✅ All demos completed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
