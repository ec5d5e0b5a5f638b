"""Tests for the hash-chained audit log."""

import json

from aios.audit.audit_log import AuditLog
from aios.core.models import AuditEntry, Command, CommandState, ExecutionResult, RiskLevel


def _entry(intent="install_package", confirmed=True, success=True, utterance="install nginx"):
    command = Command(utterance=utterance, intent=intent, tools=[intent], risk_level=RiskLevel.MODERATE)
    result = ExecutionResult(
        command_id=command.id,
        success=success,
        state=CommandState.SUCCEEDED if success else CommandState.CANCELLED,
    )
    return AuditEntry(utterance=utterance, command=command, confirmed=confirmed, result=result)


class TestAppend:
    def test_chain_links(self):
        log = AuditLog()
        first = log.append(_entry())
        second = log.append(_entry())
        assert first.previous_hash == AuditLog.GENESIS_HASH
        assert second.previous_hash == first.hash
        assert (first.sequence, second.sequence) == (0, 1)
        assert log.head_hash == second.hash
        assert len(log) == 2

    def test_hash_is_sha256_hex(self):
        chained = AuditLog().append(_entry())
        assert len(chained.hash) == 64
        int(chained.hash, 16)


class TestVerify:
    def test_empty(self):
        assert AuditLog().verify_integrity() == (True, "Empty log, nothing to verify")

    def test_valid_chain(self):
        log = AuditLog()
        for _ in range(3):
            log.append(_entry())
        assert log.verify_integrity() == (True, "All 3 entries verified")

    def test_tampered_entry(self):
        log = AuditLog()
        log.append(_entry())
        log.append(_entry())
        log._entries[1].entry = _entry(utterance="install something else")
        valid, message = log.verify_integrity()
        assert valid is False
        assert message.startswith("Tampered entry at 1")

    def test_dropped_entry_breaks_chain(self):
        log = AuditLog()
        for _ in range(3):
            log.append(_entry())
        del log._entries[1]
        assert log.verify_integrity() == (False, "Chain broken at entry 1")


class TestQuery:
    def test_filters(self):
        log = AuditLog()
        installed = log.append(_entry())
        log.append(_entry(intent="check_system_requirements", confirmed=False))
        log.append(_entry(confirmed=False, success=False))

        assert len(log.get_entries()) == 3
        assert len(log.get_entries(intent="install_package")) == 2
        assert len(log.get_entries(confirmed=False)) == 2
        assert log.get_entries(command_id=installed.entry.command.id) == [installed]
        assert log.get_entries(intent="install_package", confirmed=True) == [installed]

    def test_export_json(self, tmp_path):
        log = AuditLog()
        log.append(_entry())
        path = tmp_path / "audit.json"
        log.export_json(path)
        data = json.loads(path.read_text())
        assert data["total_entries"] == 1
        assert data["chain_head"] == log.head_hash
        assert data["entries"][0]["entry"]["utterance"] == "install nginx"
        assert data["entries"][0]["entry"]["command"]["risk_level"] == "moderate"
