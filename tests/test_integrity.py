"""Integrity monitor tests: baseline, drift, restore."""

import pytest


@pytest.fixture
def monitor(live):
    from ctxpack.integrity import IntegrityMonitor
    from ctxpack.stores import MemoryStore

    return IntegrityMonitor(MemoryStore(), writer=live)


class TestBaseline:

    def test_starts_without_baseline(self, monitor):
        from ctxpack.integrity import NO_BASELINE

        assert monitor.state == NO_BASELINE
        assert monitor.deviations() == []

    def test_first_check_snapshots(self, monitor, live):
        from ctxpack.integrity import BASELINED
        from ctxpack.hashstore import hash_content

        live.write("IDENTITY.md", "I am")
        assert monitor.check_drift(live.sections()) == []
        assert monitor.state == BASELINED
        assert monitor.baseline() == {"IDENTITY.md": hash_content("I am")}

    def test_snapshot_reports_to_stderr(self, monitor, live, capsys):
        live.write("SOUL.md", "calm")
        assert monitor.snapshot(live.sections()) == ["SOUL.md"]
        assert "Integrity baseline updated" in capsys.readouterr().err

    def test_empty_snapshot_counts_as_no_baseline(self, monitor):
        from ctxpack.integrity import NO_BASELINE

        monitor.snapshot([])
        assert monitor.state == NO_BASELINE


class TestDrift:

    def test_mutation_and_missing(self, monitor, live):
        from ctxpack.integrity import DEGRADED, MISSING, MUTATED, Deviation

        live.write("IDENTITY.md", "I am")
        live.write("SOUL.md", "calm")
        monitor.snapshot(live.sections())

        live.write("IDENTITY.md", "I am someone else")
        del live.files["SOUL.md"]
        deviations = monitor.check_drift(live.sections())

        assert deviations == [Deviation(MUTATED, "IDENTITY.md"), Deviation(MISSING, "SOUL.md")]
        assert monitor.state == DEGRADED
        assert monitor.deviations() == deviations
        assert [str(d) for d in deviations] == ["Mutated: IDENTITY.md", "Missing: SOUL.md"]

    def test_missing_identity_round_trip(self, monitor, live):
        from ctxpack.integrity import MISSING, Deviation

        live.write("IDENTITY", "v1")
        monitor.snapshot(live.sections())
        del live.files["IDENTITY"]

        assert monitor.check_drift(live.sections()) == [Deviation(MISSING, "IDENTITY")]
        assert monitor.restore() == ["IDENTITY"]
        assert live.files["IDENTITY"] == "v1"

    def test_unchanged_is_clean(self, monitor, live):
        live.write("IDENTITY.md", "I am")
        monitor.snapshot(live.sections())
        assert monitor.check_drift(live.sections()) == []

    def test_new_sections_are_not_deviations(self, monitor, live):
        live.write("IDENTITY.md", "I am")
        monitor.snapshot(live.sections())
        live.write("AGENTS.md", "agents")
        assert monitor.check_drift(live.sections()) == []

    def test_deviations_survive_a_new_monitor(self, live):
        """Check in one process, restore in another."""
        from ctxpack.integrity import IntegrityMonitor
        from ctxpack.stores import MemoryStore

        store = MemoryStore()
        live.write("IDENTITY.md", "I am")
        IntegrityMonitor(store).snapshot(live.sections())
        live.write("IDENTITY.md", "tampered")
        IntegrityMonitor(store).check_drift(live.sections())

        assert IntegrityMonitor(store, writer=live).restore() == ["IDENTITY.md"]
        assert live.files["IDENTITY.md"] == "I am"


class TestRestore:

    def test_restore_brings_back_content(self, monitor, live):
        from ctxpack.integrity import BASELINED

        live.write("IDENTITY.md", "I am")
        live.write("SOUL.md", "calm")
        monitor.snapshot(live.sections())
        live.write("IDENTITY.md", "changed")
        del live.files["SOUL.md"]
        monitor.check_drift(live.sections())

        assert monitor.restore() == ["IDENTITY.md", "SOUL.md"]
        assert live.files == {"IDENTITY.md": "I am", "SOUL.md": "calm"}
        assert monitor.state == BASELINED
        assert monitor.check_drift(live.sections()) == []

    def test_restore_with_nothing_recorded(self, monitor):
        assert monitor.restore() == []

    def test_failed_write_stays_recorded(self, live, capsys):
        from ctxpack.integrity import DEGRADED, IntegrityMonitor
        from ctxpack.stores import MemoryStore

        class FailingWriter:
            def write(self, name, content):
                raise OSError("read-only")

        store = MemoryStore()
        live.write("IDENTITY.md", "I am")
        IntegrityMonitor(store).snapshot(live.sections())
        live.write("IDENTITY.md", "changed")
        monitor = IntegrityMonitor(store, writer=FailingWriter())
        monitor.check_drift(live.sections())

        assert monitor.restore() == []
        assert monitor.state == DEGRADED
        assert "Restore of IDENTITY.md failed" in capsys.readouterr().err

    def test_unwritable_name_is_skipped(self, tmp_path, capsys):
        """A name the workspace refuses is skipped; the others are still restored."""
        from ctxpack.compiler import Section
        from ctxpack.integrity import DEGRADED, IntegrityMonitor, Deviation, MISSING
        from ctxpack.sources import SectionDirectory
        from ctxpack.stores import MemoryStore

        store = MemoryStore()
        IntegrityMonitor(store).snapshot([
            Section("sub/IDENTITY.md", "v1", 10),
            Section("SOUL.md", "calm", 10),
        ])
        monitor = IntegrityMonitor(store, writer=SectionDirectory(tmp_path))
        monitor.check_drift([])

        assert monitor.restore() == ["SOUL.md"]
        assert (tmp_path / "SOUL.md").read_text(encoding="utf-8") == "calm"
        assert monitor.deviations() == [Deviation(MISSING, "sub/IDENTITY.md")]
        assert monitor.state == DEGRADED
        assert "Restore of sub/IDENTITY.md failed" in capsys.readouterr().err

    def test_missing_backup_is_skipped(self, live, capsys):
        from ctxpack.integrity import IntegrityMonitor
        from ctxpack.stores import MemoryStore

        store = MemoryStore({
            "baseline": {"IDENTITY.md": "0" * 32},
            "backup": {},
            "deviations": [{"kind": "mutated", "name": "IDENTITY.md"}],
        })
        monitor = IntegrityMonitor(store, writer=live)

        assert monitor.restore() == []
        assert [d.name for d in monitor.deviations()] == ["IDENTITY.md"]
        assert "No backup for IDENTITY.md" in capsys.readouterr().err

    def test_no_writer_restores_nothing(self, live):
        from ctxpack.integrity import IntegrityMonitor
        from ctxpack.stores import MemoryStore

        store = MemoryStore()
        live.write("IDENTITY.md", "I am")
        monitor = IntegrityMonitor(store)
        monitor.snapshot(live.sections())
        live.write("IDENTITY.md", "changed")
        monitor.check_drift(live.sections())
        assert monitor.restore() == []

    def test_malformed_recorded_deviations_are_ignored(self):
        from ctxpack.integrity import IntegrityMonitor
        from ctxpack.stores import MemoryStore

        store = MemoryStore({
            "baseline": {"A": "h"},
            "backup": {"A": "content"},
            "deviations": [{"kind": "exploded", "name": "A"}, "junk", {"kind": "missing"}],
        })
        assert IntegrityMonitor(store).deviations() == []
