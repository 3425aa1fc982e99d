"""Attention ledger tests."""

import json

import pytest


class TestReinforce:
    """Reinforcement adds the increment and saturates at 1.0."""

    def test_reinforce_from_zero(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        ledger = AttentionLedger(MemoryStore())
        assert ledger.get("MEMORY.md") == 0.0
        assert ledger.reinforce("MEMORY.md") == pytest.approx(0.1)
        assert "MEMORY.md" in ledger

    def test_saturates(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        ledger = AttentionLedger(MemoryStore({"a": 0.95}))
        assert ledger.reinforce("a") == 1.0
        assert ledger.reinforce("a") == 1.0

    def test_reinforce_many_saves_once(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        store = MemoryStore()
        ledger = AttentionLedger(store)
        weights = ledger.reinforce_many(["a", "b", "a"])

        assert weights["a"] == pytest.approx(0.2)
        assert weights["b"] == pytest.approx(0.1)
        assert store.saves == 1
        assert ledger.reinforce_many([]) == {}
        assert store.saves == 1

    def test_persists_to_store(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        store = MemoryStore()
        AttentionLedger(store).reinforce("a")
        assert AttentionLedger(store).get("a") == pytest.approx(0.1)


class TestDecay:
    """Decay multiplies every weight and forgets tiny ones."""

    def test_decay_tick(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        ledger = AttentionLedger(MemoryStore({"a": 1.0, "b": 0.5}))
        assert ledger.decay_all() == []
        assert ledger.get("a") == pytest.approx(0.95)
        assert ledger.get("b") == pytest.approx(0.475)

    def test_forgets_below_epsilon(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        store = MemoryStore({"stale": 0.0105, "kept": 0.5})
        ledger = AttentionLedger(store)
        assert ledger.decay_all() == ["stale"]
        assert "stale" not in ledger
        assert "stale" not in store.load()

    def test_single_reinforcement_is_eventually_forgotten(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        ledger = AttentionLedger(MemoryStore())
        ledger.reinforce("once")
        ticks = 0
        while "once" in ledger:
            ledger.decay_all()
            ticks += 1
        # 0.1 * 0.95^n < 0.01 first holds at n = 45
        assert ticks == 45

    def test_weights_stay_in_unit_interval(self):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        ledger = AttentionLedger(MemoryStore())
        for i in range(200):
            if i % 3:
                ledger.reinforce("x")
            else:
                ledger.decay_all()
            assert all(0.0 <= w <= 1.0 for w in ledger.weights().values())


class TestLoading:
    """Malformed persisted values are discarded, not trusted."""

    def test_discards_malformed(self, capsys):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import MemoryStore

        store = MemoryStore({"ok": 0.4, "text": "high", "flag": True, "nan": float("nan"), "big": 7})
        ledger = AttentionLedger(store)

        assert ledger.weights() == {"ok": 0.4, "big": 1.0}
        assert "malformed attention entries" in capsys.readouterr().err

    def test_corrupt_file_is_empty(self, tmp_path, capsys):
        from ctxpack.attention import AttentionLedger
        from ctxpack.stores import JsonFileStore

        path = tmp_path / "attention.json"
        path.write_text("{not json", encoding="utf-8")
        ledger = AttentionLedger(JsonFileStore(path))

        assert len(ledger) == 0
        assert "Corrupt state file" in capsys.readouterr().err
        ledger.reinforce("a")
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": pytest.approx(0.1)}


class TestReinforcementNames:

    def test_skill_tool_credits_skill(self):
        from ctxpack.attention import reinforcement_names

        assert reinforcement_names("skill_git_commit") == ["skill:git", "skill_git_commit"]

    def test_plain_tool(self):
        from ctxpack.attention import reinforcement_names

        assert reinforcement_names("read_file") == ["read_file"]
        assert reinforcement_names("skill_") == ["skill_"]
