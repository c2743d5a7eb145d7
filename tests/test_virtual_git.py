"""Unit tests for VirtualGitRepository.

The repository fixture tracks /home/user of the demo tree, which holds
README.md and script.js.
"""

import pytest

from tests.fixtures.workspace import make_file
from workspace.git import NOT_A_REPOSITORY, GitError


@pytest.fixture
def repo(git_repo):
    """Provide an initialized repository."""
    git_repo.init()
    return git_repo


@pytest.fixture
def committed(repo):
    """Provide a repository with everything committed once on main."""
    repo.add(["."])
    repo.commit("initial")
    return repo


class TestInit:
    """Test repository initialization."""

    def test_commands_require_init(self, git_repo):
        """Verify operations before init are rejected."""
        with pytest.raises(GitError, match="not a git repository"):
            git_repo.status()
        assert str(GitError(NOT_A_REPOSITORY)) == NOT_A_REPOSITORY

    def test_init_messages(self, git_repo):
        """Verify init and re-init report the repository location."""
        assert git_repo.init() == "Initialized empty Git repository in /home/user/.git/"
        assert git_repo.init().startswith("Reinitialized existing Git repository")
        assert git_repo.is_repo()


class TestStatusAndIndex:
    """Test status, add and reset."""

    def test_fresh_repo_lists_untracked(self, repo):
        """Verify working files start untracked."""
        status = repo.status()

        assert status.branch == "main"
        assert status.untracked == ["README.md", "script.js"]
        assert not status.clean

    def test_add_single_path(self, repo):
        """Verify add stages one file."""
        repo.add(["README.md"])

        status = repo.status()
        assert status.staged == ["README.md"]
        assert status.untracked == ["script.js"]

    def test_add_unknown_path(self, repo):
        """Verify an unmatched pathspec is rejected."""
        with pytest.raises(GitError, match="pathspec 'nope' did not match"):
            repo.add(["nope"])

    def test_add_directory_prefix(self, repo, seeded_vfs):
        """Verify adding a directory stages the files below it."""
        make_file(seeded_vfs, "/home/user/Projects/app.py", "x")

        repo.add(["Projects"])

        assert repo.status().staged == ["Projects/app.py"]

    def test_modified_after_commit(self, committed, seeded_vfs):
        """Verify a change to a committed file shows as modified."""
        readme = seeded_vfs.resolve_path("/home/user/README.md")
        seeded_vfs.set_content(readme.id, "changed")

        status = committed.status()

        assert status.modified == ["README.md"]
        assert status.staged == []

    def test_reset_unstages(self, repo):
        """Verify reset removes a new file from the index."""
        repo.add(["README.md"])

        repo.reset("README.md")

        assert repo.status().staged == []

    def test_reset_unknown(self, repo):
        """Verify resetting an unknown path is rejected."""
        with pytest.raises(GitError):
            repo.reset("ghost.txt")

    def test_path_outside_repository(self, repo):
        """Verify absolute paths outside the root are rejected."""
        with pytest.raises(GitError, match="outside repository"):
            repo.add(["/etc/config.json"])


class TestCommitAndLog:
    """Test commit and log."""

    def test_commit_records_history(self, committed):
        """Verify a commit cleans the tree and appears in the log."""
        entries = committed.log()

        assert committed.status().clean
        assert len(entries) == 1
        assert entries[0].message == "initial"
        assert entries[0].author == "tester"
        assert len(entries[0].oid) == 40

    def test_empty_message(self, repo):
        """Verify an empty message aborts the commit."""
        repo.add(["."])

        with pytest.raises(GitError, match="empty commit message"):
            repo.commit("  ")

    def test_nothing_to_commit(self, committed):
        """Verify committing an unchanged index is rejected."""
        with pytest.raises(GitError, match="nothing to commit"):
            committed.commit("again")

    def test_log_without_commits(self, repo):
        """Verify log on an unborn branch is rejected."""
        with pytest.raises(GitError, match="does not have any commits yet"):
            repo.log()

    def test_log_depth_and_order(self, committed, seeded_vfs):
        """Verify log walks parents newest first, up to depth."""
        readme = seeded_vfs.resolve_path("/home/user/README.md")
        for message in ["second", "third"]:
            seeded_vfs.set_content(readme.id, message)
            committed.add(["README.md"])
            committed.commit(message)

        assert [e.message for e in committed.log()] == ["third", "second", "initial"]
        assert [e.message for e in committed.log(2)] == ["third", "second"]


class TestBranches:
    """Test branch creation and checkout."""

    def test_branch_requires_commit(self, repo):
        """Verify branching an unborn HEAD is rejected."""
        with pytest.raises(GitError, match="Not a valid object name"):
            repo.create_branch("feature")

    def test_create_and_list(self, committed):
        """Verify branches are listed sorted with the current one flagged."""
        committed.create_branch("feature")

        branches = committed.list_branches()

        assert [b.name for b in branches] == ["feature", "main"]
        assert [b.current for b in branches] == [False, True]

    def test_duplicate_and_invalid_names(self, committed):
        """Verify duplicate or malformed branch names are rejected."""
        committed.create_branch("feature")

        with pytest.raises(GitError, match="already exists"):
            committed.create_branch("feature")
        with pytest.raises(GitError, match="not a valid branch name"):
            committed.create_branch("-x")

    def test_checkout_unknown(self, committed):
        """Verify checking out an unknown branch is rejected."""
        with pytest.raises(GitError, match="did not match"):
            committed.checkout("nope")

    def test_checkout_rewrites_working_tree(self, committed, seeded_vfs):
        """Verify switching branches rewrites tracked files in the VFS."""
        committed.create_branch("feature")
        committed.checkout("feature")
        make_file(seeded_vfs, "/home/user/feature.txt", "new")
        committed.add(["feature.txt"])
        committed.commit("add feature")

        committed.checkout("main")

        assert seeded_vfs.resolve_path("/home/user/feature.txt") is None
        committed.checkout("feature")
        assert seeded_vfs.resolve_path("/home/user/feature.txt").content == "new"

    def test_checkout_refuses_dirty_tree(self, committed, seeded_vfs):
        """Verify uncommitted changes block switching to a different commit."""
        committed.create_branch("feature")
        committed.checkout("feature")
        make_file(seeded_vfs, "/home/user/f.txt", "x")
        committed.add(["f.txt"])
        committed.commit("feature work")
        readme = seeded_vfs.resolve_path("/home/user/README.md")
        seeded_vfs.set_content(readme.id, "dirty")

        with pytest.raises(GitError, match="would be overwritten"):
            committed.checkout("main")


class TestRemote:
    """Test push and pull against the in-memory remote."""

    def test_without_remote(self, committed):
        """Verify push and pull need a remote."""
        with pytest.raises(GitError, match="No configured push destination"):
            committed.push()
        with pytest.raises(GitError, match="No remote repository specified"):
            committed.pull()

    def test_push_then_up_to_date(self, committed):
        """Verify push publishes the branch and a second push is a no-op."""
        committed.attach_remote()

        assert committed.status().ahead == 1
        assert committed.push().startswith("To origin")
        assert committed.push() == "Everything up-to-date"
        assert committed.status().ahead == 0
        assert committed.pull() == "Already up to date."

    def test_pull_fast_forwards(self, committed, seeded_vfs):
        """Verify pull moves the branch forward and updates the files."""
        committed.attach_remote()
        committed.push()
        committed.create_branch("feature")
        committed.checkout("feature")
        make_file(seeded_vfs, "/home/user/remote.txt", "from remote")
        committed.add(["remote.txt"])
        remote_tip = committed.commit("remote work")
        committed.checkout("main")
        committed._remote_branches["main"] = remote_tip

        assert committed.status().behind == 1
        assert committed.pull().endswith("Fast-forward")
        assert seeded_vfs.resolve_path("/home/user/remote.txt").content == "from remote"
        assert committed.log()[0].oid == remote_tip
