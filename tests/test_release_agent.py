import builtins
import os

import pytest

from agents.release_agent import APPROVAL_PROMPT, ReleaseAgent, ReleaseRun, RunState, console_approver
from utils.release_models import Environment, FeatureRecord, ReleaseRecord
from utils.result import FailureKind

from conftest import RELEASE_DAY

SIDEBAR = """\
const items = [
  { name: 'Dashboard', href: '/' },
  { name: 'Practice Information', href: '/practice-information' },
  { name: 'Practice Issues', href: '/practice-issues' },
];
"""

SIDEBAR_DIFF = """\
--- a/app/components/SidebarLayout.js
+++ b/app/components/SidebarLayout.js
@@ -1,3 +1,4 @@
   { name: 'Dashboard', href: '/' },
+  { name: 'Practice Information', href: '/practice-information' },
   { name: 'Practice Issues', href: '/practice-issues' },
"""

HEARTBEAT_DIFF = """\
--- a/app/api/events/route.js
+++ b/app/api/events/route.js
@@ -10,1 +10,1 @@
-const HEARTBEAT_MS = 30000;
+const HEARTBEAT_MS = 20000;
"""


def _release(version, env):
    return ReleaseRecord(version=version, environment=env, date="October 1, 2026", release_type="Feature Release")


class Approver:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.answer


def _agent(fake_git, tmp_path, answer=True, store=None):
    output = []
    approver = Approver(answer)
    agent = ReleaseAgent(
        fake_git, store,
        approver=approver, out=output.append,
        today=lambda: RELEASE_DAY, repo_root=str(tmp_path),
    )
    return agent, approver, output


def _snapshot(root):
    snap = {}
    for dirpath, _, files in os.walk(root):
        for name in files:
            path = os.path.join(dirpath, name)
            with open(path, encoding="utf-8") as f:
                snap[path] = f.read()
    return snap


def test_approved_prod_release(fake_git, prod_store, descriptors, tmp_path):
    prod_store.save_release(_release("3.2.0", Environment.PROD))
    fake_git.add_file("app/components/SidebarLayout.js", SIDEBAR, diff=SIDEBAR_DIFF)
    agent, approver, output = _agent(fake_git, tmp_path)

    run = agent.run()

    assert run.state == RunState.DONE
    assert run.exit_code == 0
    assert run.environment == Environment.PROD
    assert approver.prompts == [APPROVAL_PROMPT]
    preview = output[0]
    assert "Current version (prod): 3.2.0" in preview
    assert "Next version: 3.3.0" in preview
    assert "Practice Information Menu Item (Navigation)" in preview

    releases = prod_store.get_releases()
    assert [r.version for r in releases] == ["3.2.0", "3.3.0"]
    latest = releases[-1]
    assert latest.environment == Environment.PROD
    assert latest.release_type == "Feature Release"
    assert latest.date == "October 19, 2026"
    assert "### New Features" in latest.notes
    assert latest.features == [
        "Added Practice Information menu item to sidebar navigation between Dashboard and Practice Issues",
    ]
    assert prod_store.get_setting("current_version") == "3.3.0"

    features = prod_store.get_all_features()
    assert [(f.name, f.introduced_in_version, f.change_type) for f in features] == [
        ("Practice Information Menu Item", "3.3.0", "enhanced"),
    ]

    assert fake_git.commits[0].startswith("release: 3.3.0\n\n# Version 3.3.0")
    assert fake_git.pushed == ["main"]
    assert fake_git.calls[-3:] == ["stage_all", "commit", "push"]
    assert (tmp_path / "app" / "release-notes" / "page.js").exists()
    assert "=== RELEASE COMPLETE ===" in output[-1]


def test_rejection_leaves_no_trace(fake_git, prod_store, descriptors, tmp_path):
    prod_store.save_release(_release("3.2.0", Environment.PROD))
    fake_git.add_file("app/components/SidebarLayout.js", SIDEBAR, diff=SIDEBAR_DIFF)
    before = _snapshot(prod_store.root_dir)
    agent, approver, output = _agent(fake_git, tmp_path, answer=False)

    run = agent.run()

    assert run.state == RunState.REJECTED
    assert run.exit_code == 0
    assert _snapshot(prod_store.root_dir) == before
    assert fake_git.commits == []
    assert "stage_all" not in fake_git.calls
    assert not (tmp_path / "app" / "release-notes" / "page.js").exists()
    assert output[-1] == "Release rejected. Nothing was recorded or committed."


def test_generic_description_aborts_before_preview(fake_git, prod_store, descriptors, tmp_path):
    (tmp_path / "release_rules.yaml").write_text(
        "rules:\n"
        "  - id: lazy\n"
        "    severity: fix\n"
        "    description: Updated foo.js with improved functionality and reliability\n"
        "    path_contains: [foo.js]\n",
        encoding="utf-8",
    )
    fake_git.add_file("app/lib/foo.js", "x\n", diff="+x")
    agent, approver, output = _agent(fake_git, tmp_path, store=prod_store)

    run = agent.run()

    assert run.state == RunState.ABORTED
    assert run.exit_code == 1
    assert run.failure.kind == FailureKind.CLASSIFICATION
    assert run.failure.message == "Unable to generate specific release notes for app/lib/foo.js"
    assert approver.prompts == []
    assert prod_store.get_releases() == []
    assert fake_git.commits == []


def test_no_relevant_changes(fake_git, descriptors, tmp_path):
    fake_git.add_file("README.md", "# readme\n")
    agent, approver, output = _agent(fake_git, tmp_path)

    run = agent.run()

    assert run.state == RunState.NOTHING_TO_RELEASE
    assert run.exit_code == 0
    assert approver.prompts == []
    assert output == ["No relevant changes detected. Nothing to release."]


def test_feature_branch_releases_into_dev_lane(fake_git, dev_store, prod_store, descriptors, tmp_path):
    fake_git.branch = "feature/heartbeat"
    prod_store.save_release(_release("2.1.0", Environment.PROD))
    dev_store.save_release(_release("2.0.0-dev.3", Environment.DEV))
    fake_git.add_file("app/api/events/route.js", "const HEARTBEAT_MS = 20000;\n", diff=HEARTBEAT_DIFF)
    agent, approver, output = _agent(fake_git, tmp_path)

    run = agent.run()

    assert run.state == RunState.DONE
    assert run.environment == Environment.DEV
    assert run.next_version == "2.0.0-dev.4"
    assert "## Maintenance Update" in run.notes
    assert dev_store.get_setting("current_version") == "2.0.0-dev.4"
    assert [r.version for r in prod_store.get_releases()] == ["2.1.0"]
    assert fake_git.pushed == ["feature/heartbeat"]


def test_push_failure_aborts_after_recording(fake_git, prod_store, descriptors, tmp_path):
    fake_git.fail_on.add("push")
    fake_git.add_file("app/api/events/route.js", "const HEARTBEAT_MS = 20000;\n", diff=HEARTBEAT_DIFF)
    agent, approver, output = _agent(fake_git, tmp_path, store=prod_store)

    run = agent.run()

    assert run.state == RunState.ABORTED
    assert run.exit_code == 1
    assert run.failure.kind == FailureKind.COLLABORATOR
    assert "code=COMMAND_FAILED" in run.failure.details
    assert run.history[-1] == RunState.COMMITTING
    assert [r.version for r in prod_store.get_releases()] == ["1.0.1"]
    assert len(fake_git.commits) == 1


def test_known_feature_is_not_proposed_again(fake_git, prod_store, descriptors, tmp_path):
    prod_store.save_feature(FeatureRecord(
        name="Practice Information Menu Item", description="Sidebar entry", category="Navigation",
        introduced_in_version="3.0.0",
    ))
    prod_store.save_release(_release("3.2.0", Environment.PROD))
    fake_git.add_file("app/components/SidebarLayout.js", SIDEBAR, diff=SIDEBAR_DIFF)
    agent, approver, output = _agent(fake_git, tmp_path, store=prod_store)

    run = agent.run()

    assert run.feature_candidates == []
    assert run.features_saved == 0
    assert len(prod_store.get_all_features()) == 1


def test_console_approver(monkeypatch):
    monkeypatch.setattr(builtins, "input", lambda prompt: " Yes ")
    assert console_approver(APPROVAL_PROMPT) is True
    monkeypatch.setattr(builtins, "input", lambda prompt: "n")
    assert console_approver(APPROVAL_PROMPT) is False

    def eof(prompt):
        raise EOFError
    monkeypatch.setattr(builtins, "input", eof)
    assert console_approver(APPROVAL_PROMPT) is False


@pytest.mark.parametrize("state,code", [
    (RunState.DONE, 0),
    (RunState.REJECTED, 0),
    (RunState.NOTHING_TO_RELEASE, 0),
    (RunState.ABORTED, 1),
])
def test_exit_codes(state, code):
    assert ReleaseRun(state=state).exit_code == code


def test_unreadable_release_history_aborts_cleanly(fake_git, prod_store, descriptors, tmp_path):
    os.makedirs(prod_store.root_dir, exist_ok=True)
    with open(os.path.join(prod_store.root_dir, "releases.json"), "w", encoding="utf-8") as f:
        f.write('[{"version": "1.2.0", "environment": "prod", "date": "x"}]')
    fake_git.add_file("app/api/events/route.js", "const HEARTBEAT_MS = 20000;\n", diff=HEARTBEAT_DIFF)
    agent, approver, output = _agent(fake_git, tmp_path, store=prod_store)

    run = agent.run()

    assert run.state == RunState.ABORTED
    assert run.failure.kind == FailureKind.COLLABORATOR
    assert "code=READ" in run.failure.details
    assert approver.prompts == []
