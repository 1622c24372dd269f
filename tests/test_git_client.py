import subprocess

import pytest

from clients.git_client import GitClient, GitError


class Recorder:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append((cmd, kwargs))
        response = self.responses.pop(0) if self.responses else (0, "", "")
        if isinstance(response, Exception):
            raise response
        code, out, err = response
        return subprocess.CompletedProcess(cmd, code, stdout=out, stderr=err)


@pytest.fixture()
def recorder(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr("clients.git_client.subprocess.run", rec)
    return rec


def test_lists_paths_from_command_output(recorder, tmp_path):
    recorder.responses = [(0, "app/a.js\0app/b.js\0", "")]
    git = GitClient(str(tmp_path), timeout_s=5)
    assert git.list_modified_paths() == ["app/a.js", "app/b.js"]
    cmd, kwargs = recorder.commands[0]
    assert cmd == ["git", "diff", "--name-only", "-z"]
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["timeout"] == 5
    assert kwargs["check"] is False
    assert kwargs["encoding"] == "utf-8"


def test_non_ascii_paths_are_returned_verbatim(recorder):
    recorder.responses = [(0, "app/components/Café.js\0app/lib/naïve search.js\0", "")]
    assert GitClient().list_staged_paths() == ["app/components/Café.js", "app/lib/naïve search.js"]
    assert recorder.commands[0][0] == ["git", "diff", "--cached", "--name-only", "-z"]


def test_untracked_listing_respects_ignore_rules(recorder):
    GitClient().list_untracked_paths()
    assert recorder.commands[0][0] == ["git", "ls-files", "--others", "--exclude-standard", "-z"]


def test_diff_falls_back_to_index_without_head(recorder):
    recorder.responses = [(128, "", "fatal: bad revision 'HEAD'"), (0, "+x\n", "")]
    assert GitClient().diff("app/a.js") == "+x\n"
    assert recorder.commands[1][0] == ["git", "diff", "--cached", "--", "app/a.js"]


def test_detached_head_is_an_error(recorder):
    recorder.responses = [(0, "\n", "")]
    with pytest.raises(GitError) as exc:
        GitClient().current_branch()
    assert exc.value.code == "DETACHED"


def test_commit_and_push_commands(recorder):
    git = GitClient(remote="upstream")
    git.stage_all()
    git.commit("release: 1.0.1")
    git.push("main")
    assert [c for c, _ in recorder.commands] == [
        ["git", "add", "-A"],
        ["git", "commit", "-m", "release: 1.0.1"],
        ["git", "push", "upstream", "main"],
    ]


def test_failed_push_carries_stderr(recorder):
    recorder.responses = [(1, "", "rejected: non-fast-forward")]
    with pytest.raises(GitError) as exc:
        GitClient().push("main")
    assert exc.value.code == "COMMAND_FAILED"
    assert "non-fast-forward" in str(exc.value)


@pytest.mark.parametrize("error,code", [
    (FileNotFoundError("git"), "NOT_FOUND"),
    (subprocess.TimeoutExpired(["git"], 5), "TIMEOUT"),
])
def test_process_errors_are_typed(recorder, error, code):
    recorder.responses = [error]
    with pytest.raises(GitError) as exc:
        GitClient().list_staged_paths()
    assert exc.value.code == code
