"""
aios Audit Log

Append-only record of every executed (or declined) command. Entries are
chained with SHA-256: each hash covers the entry and the previous hash,
so editing or dropping any entry breaks verification from that point on.

Features:
- Append-only: entries are never modified or removed
- Tamper-evident: verify_integrity() recomputes the whole chain
- Exportable: JSON export for external audit tools
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from aios.core.models import AuditEntry


class ChainedEntry(BaseModel):
    """An audit entry with its position in the hash chain."""

    entry: AuditEntry
    hash: str = Field(..., description="SHA-256 of this entry + previous hash")
    previous_hash: str
    sequence: int = 0


class AuditLog:
    """Append-only, tamper-evident log of AuditEntry records."""

    GENESIS_HASH = "0" * 64

    def __init__(self) -> None:
        self._entries: list[ChainedEntry] = []
        self._current_hash: str = self.GENESIS_HASH

    @staticmethod
    def _digest(entry: AuditEntry, previous_hash: str, sequence: int) -> str:
        content = json.dumps(
            {
                "entry": entry.model_dump(mode="json"),
                "previous_hash": previous_hash,
                "sequence": sequence,
            },
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(content.encode()).hexdigest()

    def append(self, entry: AuditEntry) -> ChainedEntry:
        sequence = len(self._entries)
        chained = ChainedEntry(
            entry=entry,
            hash=self._digest(entry, self._current_hash, sequence),
            previous_hash=self._current_hash,
            sequence=sequence,
        )
        self._entries.append(chained)
        self._current_hash = chained.hash
        return chained

    def verify_integrity(self) -> tuple[bool, str]:
        """Recompute the chain. Returns (is_valid, message)."""
        if not self._entries:
            return True, "Empty log, nothing to verify"

        expected_prev = self.GENESIS_HASH
        for i, chained in enumerate(self._entries):
            if chained.previous_hash != expected_prev or chained.sequence != i:
                return False, f"Chain broken at entry {i}"
            recomputed = self._digest(chained.entry, chained.previous_hash, chained.sequence)
            if recomputed != chained.hash:
                return False, f"Tampered entry at {i}: stored hash={chained.hash[:16]}..."
            expected_prev = chained.hash

        return True, f"All {len(self._entries)} entries verified"

    def get_entries(
        self,
        command_id: str | None = None,
        intent: str | None = None,
        confirmed: bool | None = None,
    ) -> list[ChainedEntry]:
        results = self._entries
        if command_id:
            results = [e for e in results if e.entry.command.id == command_id]
        if intent:
            results = [e for e in results if e.entry.command.intent == intent]
        if confirmed is not None:
            results = [e for e in results if e.entry.confirmed == confirmed]
        return list(results)

    def export_json(self, path: str | Path) -> None:
        """Write the full chain as JSON."""
        data = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "total_entries": len(self._entries),
            "chain_head": self._current_hash,
            "entries": [e.model_dump(mode="json") for e in self._entries],
        }
        Path(path).write_text(json.dumps(data, indent=2, default=str))

    @property
    def head_hash(self) -> str:
        return self._current_hash

    def __len__(self) -> int:
        return len(self._entries)
