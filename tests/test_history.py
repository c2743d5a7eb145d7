"""Unit tests for CommandHistory."""

from terminal.history import CommandHistory


def create_history(*lines: str, limit: int = 100) -> CommandHistory:
    history = CommandHistory(limit=limit)
    for line in lines:
        history.record(line)
    return history


class TestRecord:
    """Test recording lines."""

    def test_appends_stripped_lines(self):
        """Verify lines are stripped and appended."""
        history = create_history("  ls  ", "pwd")

        assert history.entries == ["ls", "pwd"]

    def test_skips_blank_and_repeated(self):
        """Verify blanks and immediate repeats are not recorded."""
        history = create_history("ls", "", "   ", "ls", "pwd", "ls")

        assert history.entries == ["ls", "pwd", "ls"]

    def test_drops_oldest_beyond_limit(self):
        """Verify the ring keeps only the newest ``limit`` lines."""
        history = create_history(*[f"echo {i}" for i in range(5)], limit=3)

        assert history.entries == ["echo 2", "echo 3", "echo 4"]

    def test_numbered_and_tail(self):
        """Verify numbered is 1-based and tail returns the newest lines."""
        history = create_history("a", "b", "c")

        assert history.numbered() == [(1, "a"), (2, "b"), (3, "c")]
        assert history.tail(2) == ["b", "c"]
        assert history.tail(0) == []


class TestNavigation:
    """Test up/down navigation."""

    def test_previous_walks_back_and_stops(self):
        """Verify previous walks to the oldest entry and stays there."""
        history = create_history("a", "b")

        assert history.previous() == "b"
        assert history.previous() == "a"
        assert history.previous() == "a"

    def test_next_walks_forward_then_clears(self):
        """Verify next returns an empty line past the newest entry."""
        history = create_history("a", "b")
        history.previous()
        history.previous()

        assert history.next() == "b"
        assert history.next() == ""
        assert history.next() is None

    def test_empty_history(self):
        """Verify navigation on an empty history returns None."""
        history = CommandHistory()

        assert history.previous() is None
        assert history.next() is None

    def test_record_resets_cursor(self):
        """Verify recording a line restarts navigation from the newest entry."""
        history = create_history("a", "b")
        history.previous()
        history.previous()

        history.record("c")

        assert history.previous() == "c"
