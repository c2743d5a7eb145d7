"""Tests for TerminalManager: instances, split view, routing and persistence."""

import json

import pytest

from terminal.manager import SplitMode, TerminalManager, TerminalNotFoundError


class TestInstances:
    """Test creating, closing and activating instances."""

    def test_starts_with_one_instance(self, manager):
        """Verify a fresh manager has exactly one active instance."""
        terminals = manager.list_terminals()

        assert len(terminals) == 1
        assert terminals[0].name == "Terminal 1"
        assert manager.active is terminals[0]

    def test_create_names_and_activates(self, manager):
        """Verify new instances are numbered and become active."""
        second = manager.create_terminal(shell="bash")

        assert second.name == "Terminal 2"
        assert second.shell == "bash"
        assert manager.active_id == second.id

    def test_create_without_activating(self, manager):
        """Verify activate=False keeps the current instance active."""
        first = manager.active

        manager.create_terminal(activate=False)

        assert manager.active is first

    def test_create_unknown_shell(self, manager):
        """Verify an unknown shell is rejected."""
        with pytest.raises(ValueError):
            manager.create_terminal(shell="fish")

    def test_last_instance_cannot_close(self, manager):
        """Verify closing the only instance is refused."""
        assert manager.close_terminal(manager.active_id) is False
        assert len(manager.list_terminals()) == 1

    def test_close_active_promotes_first(self, manager):
        """Verify closing the active instance activates the first remaining one."""
        first = manager.active
        second = manager.create_terminal()

        assert manager.close_terminal(second.id) is True

        assert manager.active is first

    def test_close_unknown(self, manager):
        """Verify unknown ids raise TerminalNotFoundError."""
        with pytest.raises(TerminalNotFoundError) as exc_info:
            manager.close_terminal("ghost")
        assert exc_info.value.terminal_id == "ghost"

    def test_counter_keeps_growing(self, manager):
        """Verify names are not reused after a close."""
        second = manager.create_terminal()
        manager.close_terminal(second.id)

        assert manager.create_terminal().name == "Terminal 3"

    def test_instances_are_independent(self, manager):
        """Verify cwd and history are per instance while the VFS is shared."""
        first = manager.active
        second = manager.create_terminal()

        manager.execute("cd /etc", terminal_id=first.id)
        manager.execute("mkdir shared", terminal_id=second.id)

        assert first.cwd == "/etc"
        assert second.cwd == "/home/user"
        assert first.history.entries == ["cd /etc"]
        assert manager.vfs.resolve_path("/home/user/shared") is not None


class TestSplit:
    """Test the split view."""

    def test_split_creates_partner(self, manager):
        """Verify splitting with one instance creates an inactive partner."""
        active = manager.active

        partner = manager.toggle_split(SplitMode.VERTICAL)

        assert partner.id != active.id
        assert manager.active is active
        assert [t.id for t in manager.visible_terminals()] == [active.id, partner.id]

    def test_split_reuses_existing_instance(self, manager):
        """Verify an existing inactive instance becomes the partner."""
        other = manager.create_terminal(activate=False)

        partner = manager.toggle_split("horizontal")

        assert partner is other
        assert len(manager.list_terminals()) == 2

    def test_same_mode_turns_split_off(self, manager):
        """Verify requesting the current mode again unsplits."""
        manager.toggle_split(SplitMode.VERTICAL)

        assert manager.toggle_split(SplitMode.VERTICAL) is None
        assert manager.split_mode is None
        assert len(manager.visible_terminals()) == 1

    def test_switch_mode_keeps_partner(self, manager):
        """Verify switching orientation keeps the same partner."""
        partner = manager.toggle_split(SplitMode.VERTICAL)

        assert manager.toggle_split(SplitMode.HORIZONTAL) is partner
        assert manager.split_mode == SplitMode.HORIZONTAL

    def test_activating_partner_swaps_panes(self, manager):
        """Verify activating the split partner swaps active and partner."""
        active = manager.active
        partner = manager.toggle_split(SplitMode.VERTICAL)

        manager.activate(partner.id)

        assert manager.active_id == partner.id
        assert manager.split_id == active.id

    def test_closing_partner_unsplits(self, manager):
        """Verify closing the partner turns the split off."""
        partner = manager.toggle_split(SplitMode.VERTICAL)

        manager.close_terminal(partner.id)

        assert manager.split_mode is None
        assert manager.split_id is None


class TestRouting:
    """Test execute and clear routing."""

    def test_execute_defaults_to_active(self, manager):
        """Verify lines without an id go to the active instance."""
        second = manager.create_terminal()

        manager.execute("pwd")

        assert [e.command for e in second.get_scrollback()] == ["pwd"]

    def test_execute_unknown_terminal(self, manager):
        """Verify routing to an unknown id raises."""
        with pytest.raises(TerminalNotFoundError):
            manager.execute("pwd", terminal_id="ghost")

    def test_clear(self, manager):
        """Verify clear empties one instance's scrollback."""
        manager.execute("pwd")

        manager.clear()

        assert manager.active.get_scrollback() == []


class TestPersistence:
    """Test saving and restoring sessions."""

    def test_save_writes_json(self, manager):
        """Verify save writes every instance with history and scrollback."""
        manager.execute("cd /etc")
        manager.execute("pwd")

        path = manager.save()

        data = json.loads(path.read_text(encoding="utf-8"))
        terminal = data["terminals"][0]
        assert terminal["cwd"] == "/etc"
        assert terminal["history"] == ["cd /etc", "pwd"]
        assert terminal["scrollback"][1]["output"] == "/etc"
        assert data["active_id"] == manager.active_id

    def test_restore_round_trip(self, manager, seeded_vfs):
        """Verify a new manager restores ids, cwd, history and split state."""
        manager.execute("cd /etc")
        second = manager.create_terminal(shell="zsh")
        manager.toggle_split(SplitMode.HORIZONTAL)
        manager.save()

        restored = TerminalManager(seeded_vfs, store_path=manager.store_path)

        ids = [t.id for t in restored.list_terminals()]
        assert ids == [t.id for t in manager.list_terminals()]
        first = restored.get(ids[0])
        assert first.cwd == "/etc"
        assert first.history.entries == ["cd /etc"]
        assert restored.active_id == second.id
        assert restored.get(second.id).shell == "zsh"
        assert restored.split_mode == SplitMode.HORIZONTAL
        assert restored.split_id == ids[0]
        assert restored.create_terminal().name == "Terminal 3"
        restored.shutdown(save=False)

    def test_restored_pending_entries_are_closed(self, manager, seeded_vfs):
        """Verify entries saved while pending are restored as complete."""
        manager.settings.ai_delay_seconds = 0.2
        manager.execute("ai fix")
        manager.save()
        manager.active.wait_for_pending(timeout=5)

        restored = TerminalManager(seeded_vfs, store_path=manager.store_path)

        entry = restored.active.get_scrollback()[0]
        assert entry.pending is False
        restored.shutdown(save=False)

    def test_restore_falls_back_for_missing_cwd(self, manager, seeded_vfs):
        """Verify a saved cwd that no longer exists falls back to an ancestor."""
        manager.execute("mkdir -p /tmp/work")
        manager.execute("cd /tmp/work")
        manager.save()
        seeded_vfs.delete(seeded_vfs.resolve_path("/tmp/work").id)

        restored = TerminalManager(seeded_vfs, store_path=manager.store_path)

        assert restored.active.cwd == "/tmp"
        restored.shutdown(save=False)

    def test_corrupt_store_starts_fresh(self, seeded_vfs, tmp_path):
        """Verify an unreadable store file is ignored."""
        store = tmp_path / "terminals.json"
        store.write_text("{not json", encoding="utf-8")

        restored = TerminalManager(seeded_vfs, store_path=store)

        assert [t.name for t in restored.list_terminals()] == ["Terminal 1"]
        restored.shutdown(save=False)

    def test_saved_unknown_shell_is_skipped(self, seeded_vfs, tmp_path):
        """Verify a saved terminal with an unknown shell is dropped."""
        store = tmp_path / "terminals.json"
        store.write_text(
            json.dumps({
                "terminals": [
                    {"id": "a", "name": "Terminal 1", "shell": "fish", "cwd": "/"},
                    {"id": "b", "name": "Terminal 2", "shell": "bash", "cwd": "/"},
                ],
                "active_id": "a",
            }),
            encoding="utf-8",
        )

        restored = TerminalManager(seeded_vfs, store_path=store)

        assert [t.id for t in restored.list_terminals()] == ["b"]
        assert restored.active_id == "b"
        restored.shutdown(save=False)

    def test_restore_disabled(self, manager, seeded_vfs):
        """Verify restore=False ignores an existing store."""
        manager.create_terminal()
        manager.save()

        fresh = TerminalManager(seeded_vfs, store_path=manager.store_path, restore=False)

        assert len(fresh.list_terminals()) == 1
        fresh.shutdown(save=False)

    def test_save_without_store(self, seeded_vfs):
        """Verify save without a configured path raises RuntimeError."""
        unsaved = TerminalManager(seeded_vfs)

        with pytest.raises(RuntimeError):
            unsaved.save()
        unsaved.shutdown()

    def test_shutdown_saves(self, seeded_vfs, tmp_path):
        """Verify shutdown persists by default."""
        store = tmp_path / "nested" / "terminals.json"
        session = TerminalManager(seeded_vfs, store_path=store)
        session.execute("whoami")

        session.shutdown()

        assert store.exists()
