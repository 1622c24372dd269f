from utils.change_models import ChangeKind, ChangeRecord
from utils.feature_ledger import FeatureLedger, role_draft
from utils.release_models import FeatureRecord


def test_role_drafts_for_added_files():
    assert role_draft("app/api/inventory/route.js").name == "Inventory API"
    assert role_draft("app/api/inventory/route.js").description == "API endpoint serving /api/inventory"
    page = role_draft("app/admin/reports/page.js")
    assert page.name == "Admin Reports Page"
    assert page.description == "Page available at /admin/reports"
    assert role_draft("app/page.js").name == "Root Page"
    assert role_draft("app/components/DataGrid.js").name == "DataGrid Component"
    assert role_draft("app/hooks/useSession.js").name == "UseSession Hook"
    assert role_draft("lib/mailer.js").name == "Mailer Service"
    assert role_draft("scripts/seed.js") is None


def test_signature_drafts_for_modified_page(prod_store):
    change = ChangeRecord(path="app/new-issue/page.js", raw_diff="+x")
    candidates = FeatureLedger(prod_store).extract_candidates([change], version="3.3.0")
    assert [c.name for c in candidates] == [
        "Practice-Based Issue System",
        "Leadership Selection System",
        "New Issue Type System",
    ]
    assert all(c.change_type == "enhanced" for c in candidates)
    assert all(c.introduced_in_version == "3.3.0" for c in candidates)
    assert candidates[0].source_path == "app/new-issue/page.js"


def test_modified_file_without_signature_proposes_nothing(prod_store):
    change = ChangeRecord(path="app/components/DataGrid.js", raw_diff="+x")
    assert FeatureLedger(prod_store).extract_candidates([change]) == []


def test_known_names_are_skipped_case_insensitively(prod_store):
    prod_store.save_feature(FeatureRecord(name="practice leadership api", description="d", category="API"))
    change = ChangeRecord(path="app/api/practice-leadership/route.js", raw_diff="+x")
    assert FeatureLedger(prod_store).extract_candidates([change]) == []


def test_same_name_proposed_once_per_run(prod_store):
    changes = [
        ChangeRecord(path="app/components/Chart.js", kind=ChangeKind.ADDED, content="a\n"),
        ChangeRecord(path="components/Chart.js", kind=ChangeKind.ADDED, content="b\n"),
    ]
    candidates = FeatureLedger(prod_store).extract_candidates(changes)
    assert [c.name for c in candidates] == ["Chart Component"]
    assert candidates[0].change_type == "added"


def test_persist_new_stamps_version_and_skips_existing(prod_store):
    ledger = FeatureLedger(prod_store)
    change = ChangeRecord(path="app/api/inventory/route.js", kind=ChangeKind.ADDED, content="export {}\n")
    candidates = ledger.extract_candidates([change])

    assert ledger.persist_new(candidates, version="1.1.0") == 1
    stored = prod_store.get_all_features()
    assert [(f.name, f.introduced_in_version) for f in stored] == [("Inventory API", "1.1.0")]

    assert ledger.persist_new(candidates, version="1.2.0") == 0
    assert len(prod_store.get_all_features()) == 1
