"""Unit tests for the action risk classifier."""

from __future__ import annotations

import pytest

from contracts.risk import RiskTier, max_risk
from runtime.risk import ACTION_RISK_MAP, classify_action_risk, risk_meta


# ── classify_action_risk ────────────────────────────────────────────


class TestClassifyActionRisk:
    @pytest.mark.parametrize(
        "action",
        ["list_contacts", "get_user", "search_issues", "read_inbox", "fetch_page"],
    )
    def test_read_verbs_are_auto(self, action: str) -> None:
        assert classify_action_risk(action) == RiskTier.AUTO

    @pytest.mark.parametrize("action", ["send_message", "create_issue", "update_contact"])
    def test_write_verbs_are_soft(self, action: str) -> None:
        assert classify_action_risk(action) == RiskTier.SOFT

    @pytest.mark.parametrize(
        "action", ["delete_record", "delete_all", "archive_channel", "revoke_token"]
    )
    def test_destructive_verbs_are_hard(self, action: str) -> None:
        assert classify_action_risk(action) == RiskTier.HARD

    def test_unknown_verb_defaults_to_soft(self) -> None:
        assert classify_action_risk("unknown_verb_xyz") == RiskTier.SOFT

    def test_case_insensitive(self) -> None:
        assert classify_action_risk("DELETE_something") == RiskTier.HARD

    def test_remove_matches_move_first(self) -> None:
        # "remove_user" contains "move", which precedes "remove" in the table
        assert classify_action_risk("remove_user") == RiskTier.SOFT

    def test_bulk_send_matches_send(self) -> None:
        assert classify_action_risk("bulk_send_emails") == RiskTier.SOFT

    def test_earliest_table_entry_wins_over_position_in_string(self) -> None:
        # "delete" appears first in the string, but "list" comes first in the table
        assert classify_action_risk("delete_list") == RiskTier.AUTO

    @pytest.mark.parametrize("bad", ["", None, 42, ["delete"]])
    def test_malformed_input_is_soft(self, bad: object) -> None:
        assert classify_action_risk(bad) == RiskTier.SOFT

    def test_custom_table(self) -> None:
        table = (("purge", RiskTier.HARD),)
        assert classify_action_risk("purge_cache", table) == RiskTier.HARD
        assert classify_action_risk("list_items", table) == RiskTier.SOFT


# ── ACTION_RISK_MAP ─────────────────────────────────────────────────


class TestActionRiskMap:
    def test_is_ordered_sequence(self) -> None:
        verbs = [verb for verb, _ in ACTION_RISK_MAP]
        assert verbs.index("move") < verbs.index("remove")
        assert verbs.index("list") == 0

    def test_tiers(self) -> None:
        table = dict(ACTION_RISK_MAP)
        for verb in ("list", "get", "search", "read", "fetch"):
            assert table[verb] == RiskTier.AUTO
        for verb in ("send", "create", "update", "move"):
            assert table[verb] == RiskTier.SOFT
        for verb in ("delete", "remove", "archive", "revoke"):
            assert table[verb] == RiskTier.HARD


# ── risk_meta ───────────────────────────────────────────────────────


class TestRiskMeta:
    def test_auto(self) -> None:
        meta = risk_meta(RiskTier.AUTO)
        assert meta.icon == "check_circle"
        assert meta.label == "Auto-approved"
        assert meta.css_class == "risk-auto"

    def test_soft(self) -> None:
        meta = risk_meta(RiskTier.SOFT)
        assert meta.icon == "visibility"
        assert meta.label == "Preview"
        assert meta.css_class == "risk-soft"

    def test_hard(self) -> None:
        meta = risk_meta(RiskTier.HARD)
        assert meta.icon == "warning"
        assert meta.label == "Confirm"
        assert meta.css_class == "risk-hard"

    def test_distinct_colors(self) -> None:
        assert len({risk_meta(t).color for t in RiskTier}) == 3

    def test_accepts_plain_string(self) -> None:
        assert risk_meta("hard").label == "Confirm"


# ── RiskTier ordering ───────────────────────────────────────────────


class TestRiskTierOrdering:
    def test_total_order(self) -> None:
        assert RiskTier.AUTO < RiskTier.SOFT < RiskTier.HARD
        assert RiskTier.HARD >= RiskTier.SOFT

    def test_max_risk(self) -> None:
        assert max_risk([RiskTier.AUTO, RiskTier.HARD, RiskTier.SOFT]) == RiskTier.HARD
        assert max_risk([]) == RiskTier.AUTO
