#!/usr/bin/env python3
"""Feature ledger: capability discovery over changed files.

Names are the natural key. Extraction seeds a name set from the stored ledger
and adds to it as it drafts, so a name is proposed at most once per run and
never again once persisted.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Iterable, List, Optional, Sequence, Set

from utils.change_classifier import build_context, detect_role
from utils.change_models import ChangeKind, ChangeRecord
from utils.classification_rules import FEATURE_SIGNATURES, FeatureDraft, FeatureSignature
from utils.release_models import FeatureRecord

logger = logging.getLogger(__name__)


def _title(words: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in re.split(r"[-_\s]+", words) if w)


def _route_segments(path: str, after: str) -> List[str]:
    parts = path.replace("\\", "/").split("/")
    if after in parts:
        parts = parts[parts.index(after) + 1:]
    parts = parts[:-1] if parts and os.path.splitext(parts[-1])[0] in ("page", "route", "layout", "index") else parts
    return [p for p in parts if p and not re.match(r"^[\[(].*[\])]$", p)]


def role_draft(path: str) -> Optional[FeatureDraft]:
    """Name a newly added file after the layer it lives in."""
    role = detect_role(path)
    stem = os.path.splitext(os.path.basename(path))[0]
    if role == "api":
        segs = _route_segments(path, "api")
        if not segs:
            return None
        return FeatureDraft(
            name=f"{_title(' '.join(segs))} API",
            description=f"API endpoint serving /api/{'/'.join(segs)}",
            category="API",
        )
    if role == "page":
        segs = _route_segments(path, "app")
        name = f"{_title(' '.join(segs))} Page" if segs else "Root Page"
        route = "/" + "/".join(segs)
        return FeatureDraft(name=name, description=f"Page available at {route}", category="Page")
    if role == "component":
        return FeatureDraft(name=f"{_title(stem)} Component", description=f"Reusable {_title(stem)} interface component", category="User Interface")
    if role == "hook":
        return FeatureDraft(name=f"{_title(stem)} Hook", description=f"Shared {stem} hook for client state", category="Hook")
    if role == "library":
        return FeatureDraft(name=f"{_title(stem)} Service", description=f"Shared {stem} service module", category="Library")
    return None


class FeatureLedger:
    def __init__(
        self,
        store,
        *,
        signatures: Optional[Sequence[FeatureSignature]] = None,
        extra_signatures: Optional[Sequence[FeatureSignature]] = None,
    ) -> None:
        self.store = store
        self.signatures = list(extra_signatures or []) + list(FEATURE_SIGNATURES if signatures is None else signatures)

    def all_features(self) -> List[FeatureRecord]:
        return self.store.get_all_features()

    def _known_names(self) -> Set[str]:
        return {f.name.casefold() for f in self.all_features()}

    def _drafts_for(self, change: ChangeRecord) -> List[FeatureDraft]:
        ctx = build_context(change.path, change.raw_diff, change.content, change.kind)
        drafts: List[FeatureDraft] = []
        for sig in self.signatures:
            if sig.matches(ctx):
                drafts.extend(sig.drafts)
        if change.kind == ChangeKind.ADDED:
            draft = role_draft(change.path)
            if draft is not None:
                drafts.append(draft)
        return drafts

    def extract_candidates(self, changes: Iterable[ChangeRecord], version: str = "") -> List[FeatureRecord]:
        seen = self._known_names()
        out: List[FeatureRecord] = []
        for change in changes:
            for draft in self._drafts_for(change):
                key = draft.name.casefold()
                if key in seen:
                    continue
                seen.add(key)
                out.append(FeatureRecord(
                    name=draft.name,
                    description=draft.description,
                    category=draft.category,
                    introduced_in_version=version,
                    change_type="added" if change.kind == ChangeKind.ADDED else "enhanced",
                    source_path=change.path,
                ))
        logger.info(f"Extracted {len(out)} new feature candidate(s)")
        return out

    def persist_new(self, candidates: Iterable[FeatureRecord], version: Optional[str] = None) -> int:
        """Insert candidates whose names are not in the ledger yet. Returns the count saved."""
        known = self._known_names()
        saved = 0
        for record in candidates:
            key = record.name.casefold()
            if key in known:
                logger.info(f"Feature already recorded: {record.name}")
                continue
            if version:
                record = record.model_copy(update={"introduced_in_version": version})
            if self.store.save_feature(record):
                saved += 1
                known.add(key)
                logger.info(f"✓ Recorded feature {record.name} ({record.category})")
        return saved
