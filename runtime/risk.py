"""Action risk classifier.

Maps an action identifier (``send_message``, ``delete_record``...) to a risk
tier by substring match against an ordered verb table.

The table is a sequence, not a mapping: the first verb contained anywhere in
the lower-cased identifier wins.  ``remove_user`` therefore classifies as
SOFT because "move" precedes "remove", and ``bulk_send_emails`` as SOFT via
"send".  Reordering the table changes classifications, so bump
``ACTION_RISK_MAP_VERSION`` whenever it is edited.
"""

from __future__ import annotations

import logging

from contracts.risk import RiskMeta, RiskTier

logger = logging.getLogger(__name__)

ACTION_RISK_MAP_VERSION = 1

ACTION_RISK_MAP: tuple[tuple[str, RiskTier], ...] = (
    # read-only
    ("list", RiskTier.AUTO),
    ("get", RiskTier.AUTO),
    ("search", RiskTier.AUTO),
    ("read", RiskTier.AUTO),
    ("fetch", RiskTier.AUTO),
    # mutating but reversible
    ("send", RiskTier.SOFT),
    ("create", RiskTier.SOFT),
    ("update", RiskTier.SOFT),
    ("move", RiskTier.SOFT),
    # destructive
    ("delete", RiskTier.HARD),
    ("remove", RiskTier.HARD),
    ("archive", RiskTier.HARD),
    ("revoke", RiskTier.HARD),
)

DEFAULT_RISK = RiskTier.SOFT

_RISK_META: dict[RiskTier, RiskMeta] = {
    RiskTier.AUTO: RiskMeta(
        icon="check_circle", label="Auto-approved", color="#22c55e", css_class="risk-auto"
    ),
    RiskTier.SOFT: RiskMeta(
        icon="visibility", label="Preview", color="#f59e0b", css_class="risk-soft"
    ),
    RiskTier.HARD: RiskMeta(
        icon="warning", label="Confirm", color="#ef4444", css_class="risk-hard"
    ),
}


def classify_action_risk(
    action_id: object,
    table: tuple[tuple[str, RiskTier], ...] = ACTION_RISK_MAP,
) -> RiskTier:
    """Classify an action identifier; unknown or malformed input is SOFT."""
    if not isinstance(action_id, str) or not action_id:
        logger.warning("Malformed action identifier %r; classifying as %s",
                       action_id, DEFAULT_RISK.value)
        return DEFAULT_RISK

    lowered = action_id.lower()
    for verb, tier in table:
        if verb in lowered:
            return tier

    logger.debug("No verb matched action %r; defaulting to %s", action_id, DEFAULT_RISK.value)
    return DEFAULT_RISK


def risk_meta(tier: RiskTier) -> RiskMeta:
    """Display metadata for a tier. Raises ValueError for a non-tier value."""
    return _RISK_META[RiskTier(tier)]
