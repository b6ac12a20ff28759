from datetime import date

from app.studiodesk.db.models import Quotation
from app.studiodesk.listing.config import ListRequest, ListScope, QuotationStatus
from app.studiodesk.listing.entities import LIST_CONFIGS
from app.studiodesk.listing.query import (
    NIL_UUID,
    build_list_query,
    effective_search_term,
    quotation_status_clause,
    restrict_ids,
    sanitize_search_term,
    scope_clause,
)

TODAY = date(2026, 5, 1)
WORKSPACE = "6f1c5d1e-3c0a-4d7e-9a55-2b8f0d6a1c11"
ADMIN_SCOPE = ListScope(workspace_id=WORKSPACE, user_id="3b1f0c52-8a4e-4f7d-a0a1-71f9a3b6c2d4", role="Admin")


def _sql(statement) -> str:
    return str(statement)


def _where(statement) -> str:
    sql = _sql(statement)
    where = sql.split("WHERE", 1)[1]
    return where.split("ORDER BY", 1)[0]


def test_sanitize_search_term_replaces_reserved_characters():
    assert sanitize_search_term("  John, (Doe) ") == "John   Doe"
    assert sanitize_search_term("(,)") == ""
    assert sanitize_search_term("plain") == "plain"


def test_effective_search_term_requires_active_non_blank_search():
    assert effective_search_term(ListRequest(search_term="mehta", search_active=False)) is None
    assert effective_search_term(ListRequest(search_term="(,)", search_active=True)) is None
    assert effective_search_term(ListRequest(search_term=" mehta ", search_active=True)) == "mehta"


def test_restrict_ids_uses_nil_sentinel_when_empty():
    assert restrict_ids([]) == [NIL_UUID]
    assert restrict_ids([None]) == [NIL_UUID]
    assert restrict_ids(["b", "a", "b"]) == ["a", "b"]


def test_quotation_converted_wins_over_expired():
    clause = quotation_status_clause(Quotation, {QuotationStatus.CONVERTED, QuotationStatus.EXPIRED}, TODAY)
    sql = str(clause)
    assert "converted_to_event IS NOT NULL" in sql
    assert "valid_until" not in sql


def test_quotation_expired_and_valid_are_exclusive_of_converted():
    expired_sql = str(quotation_status_clause(Quotation, {QuotationStatus.EXPIRED}, TODAY))
    assert "converted_to_event IS NULL" in expired_sql
    assert "valid_until <" in expired_sql

    default_sql = str(quotation_status_clause(Quotation, set(), TODAY))
    assert "converted_to_event IS NULL" in default_sql
    assert "valid_until IS NULL" in default_sql


def test_quotation_query_with_converted_and_expired_has_no_validity_comparison():
    config = LIST_CONFIGS["quotations"]
    request = ListRequest(filters=frozenset({"converted", "expired"}))
    query = build_list_query(config, ADMIN_SCOPE, request, today=TODAY)
    where = _where(query.rows)
    assert "converted_to_event IS NOT NULL" in where
    assert "valid_until" not in where


def test_same_column_filters_share_one_in_clause():
    config = LIST_CONFIGS["tasks"]
    request = ListRequest(filters=frozenset({"pending", "completed", "urgent_priority"}))
    where = _where(build_list_query(config, ADMIN_SCOPE, request, today=TODAY).rows)
    assert where.count("tasks.status IN") == 1
    assert where.count("tasks.priority IN") == 1


def test_unknown_filter_keys_are_ignored():
    config = LIST_CONFIGS["clients"]
    plain = build_list_query(config, ADMIN_SCOPE, ListRequest(), today=TODAY)
    unknown = build_list_query(config, ADMIN_SCOPE, ListRequest(filters=frozenset({"nope"})), today=TODAY)
    assert unknown.ignored_filters == ("nope",)
    assert _sql(unknown.rows) == _sql(plain.rows)


def test_unknown_sort_falls_back_to_default_with_id_tie_breaker():
    config = LIST_CONFIGS["clients"]
    query = build_list_query(config, ADMIN_SCOPE, ListRequest(sort_by="password"), today=TODAY)
    assert query.sort_by == "created_at"
    order = _sql(query.rows).split("ORDER BY", 1)[1]
    assert "clients.created_at DESC" in order
    assert "clients.id ASC" in order


def test_search_spans_configured_columns_and_client_name():
    config = LIST_CONFIGS["events"]
    request = ListRequest(search_term="mehta", search_active=True)
    where = _where(build_list_query(config, ADMIN_SCOPE, request, today=TODAY).rows).lower()
    for column in ("events.title", "events.venue", "events.event_type"):
        assert f"lower({column}) like" in where
    assert "events.client_id in (select clients.id" in where


def test_scope_clause_for_assigned_lists_depends_on_role():
    tasks = LIST_CONFIGS["tasks"]
    elevated = str(scope_clause(tasks, ADMIN_SCOPE))
    assert "tasks.firm_id" in elevated

    staff = ListScope(workspace_id=WORKSPACE, user_id=ADMIN_SCOPE.user_id, role="Editor")
    assert "tasks.assigned_to" in str(scope_clause(tasks, staff))

    assignments = LIST_CONFIGS["event_staff_assignments"]
    staff_sql = str(scope_clause(assignments, staff))
    assert "event_staff_assignments.staff_id" in staff_sql
    assert "event_staff_assignments.freelancer_id" in staff_sql

    anonymous = ListScope(workspace_id=WORKSPACE, user_id=None, role="Editor")
    anonymous_sql = str(scope_clause(tasks, anonymous))
    assert "assigned_to" not in anonymous_sql
    assert "firm_id" not in anonymous_sql


def test_page_window_translates_to_offset_and_limit():
    request = ListRequest(page=2, page_size=25)
    assert request.window == (50, 74)
    query = build_list_query(LIST_CONFIGS["clients"], ADMIN_SCOPE, request, today=TODAY)
    assert query.rows._offset == 50
    assert query.rows._limit == 25
