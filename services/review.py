from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from models import Decision, EnrichedProfile, Guest, GuestView


def decision_from_approval_status(status: Optional[str]) -> Decision:
    """Map the event platform's approval_status column to a review decision."""
    value = (status or "").strip().lower()
    if value in ("approved", "invited"):
        return Decision.APPROVED
    if value == "declined":
        return Decision.DENIED
    # pending_approval and anything unknown needs a human look
    return Decision.PENDING


def build_views(guests: Sequence[Guest]) -> Dict[str, GuestView]:
    return {
        g.api_id: GuestView(guest=g, decision=decision_from_approval_status(g.extra.get("approval_status")))
        for g in guests
    }


def merge_profiles(views: Dict[str, GuestView], profiles: Iterable[EnrichedProfile]) -> Dict[str, GuestView]:
    """Attach delivered profiles to their views by api_id; unknown ids are ignored.

    Views are replaced, never mutated; a later profile for the same id wins.
    """
    merged = dict(views)
    for profile in profiles:
        view = merged.get(profile.api_id)
        if view is None:
            continue
        merged[profile.api_id] = view.model_copy(update={"enriched": profile})
    return merged


def _searchable_fields(view: GuestView) -> List[str]:
    values = [view.guest.name, view.guest.email]
    if view.enriched is not None:
        e = view.enriched
        values += [e.company, e.job_title, e.bio, e.location]
    return [v.lower() for v in values if v]


def should_auto_reject(view: GuestView, keywords: Sequence[str]) -> bool:
    needles = [k.strip().lower() for k in keywords if k and k.strip()]
    if not needles:
        return False
    fields = _searchable_fields(view)
    return any(n in f for n in needles for f in fields)


def apply_keyword_filters(views: Dict[str, GuestView], keywords: Sequence[str]) -> Dict[str, GuestView]:
    """Deny still-pending guests whose name, email or profile mentions a keyword."""
    out: Dict[str, GuestView] = {}
    for api_id, view in views.items():
        if view.decision is Decision.PENDING and should_auto_reject(view, keywords):
            view = view.model_copy(update={"decision": Decision.DENIED})
        out[api_id] = view
    return out


def count_decisions(views: Dict[str, GuestView]) -> Dict[Decision, int]:
    counts = {d: 0 for d in Decision}
    for view in views.values():
        counts[view.decision] += 1
    return counts
