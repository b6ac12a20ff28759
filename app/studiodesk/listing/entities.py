from __future__ import annotations

from sqlalchemy import and_, exists

from app.studiodesk.core.config import settings
from app.studiodesk.core.error_catalog import AppError, ErrorCatalog
from app.studiodesk.db.models import (
    AccountingEntry,
    Client,
    Event,
    EventStaffAssignment,
    Expense,
    Freelancer,
    Quotation,
    Task,
)
from app.studiodesk.listing.config import (
    ColumnFilter,
    FilterConfig,
    FilterSpec,
    PredicateFilter,
    QuotationStatus,
    QuotationStatusFilter,
    SortOption,
    StaffRoleFilter,
    Visibility,
)
from app.studiodesk.listing.enrichers import attach_clients, enrich_events

DATE_ADDED = SortOption("created_at", "Date Added")


def _column_filters(column: str, values: dict[str, str]) -> dict[str, FilterSpec]:
    return {key: ColumnFilter(column=column, value=value) for key, value in values.items()}


def _present(column_name: str):
    def build(model, _today):
        column = getattr(model, column_name)
        return and_(column.is_not(None), column != "")

    return build


def _overdue(model, today):
    return and_(model.due_date < today, model.status != "Completed")


def _no_staff(model, _today):
    return ~exists().where(EventStaffAssignment.event_id == model.id)


def _upcoming(model, today):
    return model.event_date >= today


def _past(model, today):
    return model.event_date < today


EVENT_TYPES = {
    "wedding": "Wedding",
    "pre_wedding": "Pre-Wedding",
    "ring_ceremony": "Ring-Ceremony",
    "maternity": "Maternity Photography",
    "others": "Others",
}

STAFF_ROLES = {
    "photographer": "Photographer",
    "cinematographer": "Cinematographer",
    "editor": "Editor",
    "drone": "Drone Pilot",
}

ASSET_CATEGORIES = {
    "cameras": "Cameras",
    "lenses": "Lenses",
    "lighting_equipment": "Lighting Equipment",
    "audio_equipment": "Audio Equipment",
    "drones": "Drones",
    "stabilizers": "Stabilizers & Gimbals",
    "tripods": "Tripods & Stands",
    "storage": "Storage & Backup",
    "computer": "Computer & Software",
    "office_equipment": "Office Equipment",
    "vehicles": "Vehicles",
}

DEBIT_CATEGORIES = {
    "studio_rent": "Studio Rent",
    "utilities": "Utilities",
    "marketing_expense": "Marketing",
    "insurance": "Insurance",
    "maintenance_expense": "Maintenance",
    "travel_expense": "Travel",
    "staff_salary": "Staff Salary",
    "freelancer_payment": "Freelancer Payment",
    "bank_charges": "Bank Charges",
    "taxes": "Taxes",
    "loan_emi": "Loan & EMI",
}

CREDIT_CATEGORIES = {
    "event_revenue": "Event Revenue",
    "other_income": "Other Income",
    "other_expense": "Other Expense",
    "custom": "Custom",
}

EXPENSE_CATEGORIES = {
    "equipment": "Equipment",
    "travel": "Travel",
    "food": "Food",
    "salary": "Salary",
    "marketing": "Marketing",
    "maintenance": "Maintenance",
    "accommodation": "Accommodation",
    "software": "Software",
    "other": "Other",
}


def _build_registry() -> dict[str, FilterConfig]:
    page_size = settings.LIST_DEFAULT_PAGE_SIZE
    max_page_size = settings.LIST_MAX_PAGE_SIZE
    configs = [
        FilterConfig(
            entity="clients",
            model=Client,
            search_columns=("name", "phone", "email", "address"),
            sort_options=(DATE_ADDED, SortOption("name", "Name")),
            filters={
                "has_email": PredicateFilter(_present("email"), "Has Email"),
                "has_address": PredicateFilter(_present("address"), "Has Address"),
            },
            page_size=page_size,
            max_page_size=max_page_size,
        ),
        FilterConfig(
            entity="events",
            model=Event,
            search_columns=("title", "venue", "event_type"),
            sort_options=(
                DATE_ADDED,
                SortOption("event_date", "Event Date"),
                SortOption("title", "Title"),
                SortOption("total_amount", "Total Amount"),
                SortOption("balance_amount", "Balance Due"),
            ),
            filters={
                **_column_filters("event_type", EVENT_TYPES),
                **{key: StaffRoleFilter(role) for key, role in STAFF_ROLES.items()},
                "no_staff": PredicateFilter(_no_staff, "No Staff Assigned"),
                "upcoming": PredicateFilter(_upcoming, "Upcoming"),
                "past": PredicateFilter(_past, "Past"),
            },
            page_size=page_size,
            max_page_size=max_page_size,
            search_client_name=True,
            related_tables=("payments", "event_closing_balances"),
            enrich=enrich_events,
        ),
        FilterConfig(
            entity="tasks",
            model=Task,
            search_columns=("title", "description"),
            sort_options=(
                DATE_ADDED,
                SortOption("due_date", "Due Date"),
                SortOption("title", "Title"),
                SortOption("priority", "Priority"),
                SortOption("status", "Status"),
            ),
            filters={
                **_column_filters(
                    "status",
                    {
                        "completed": "Completed",
                        "in_progress": "In Progress",
                        "pending": "Pending",
                        "waiting_response": "Waiting for Response",
                        "accepted": "Accepted",
                        "declined": "Declined",
                        "on_hold": "On Hold",
                        "under_review": "Under Review",
                        "reported": "Reported",
                    },
                ),
                **_column_filters(
                    "priority",
                    {"urgent_priority": "Urgent", "medium_priority": "Medium", "low_priority": "Low"},
                ),
                **_column_filters(
                    "task_type",
                    {"photo_editing": "Photo Editing", "video_editing": "Video Editing", "other_task": "Other"},
                ),
                "overdue": PredicateFilter(_overdue, "Overdue"),
            },
            page_size=page_size,
            max_page_size=max_page_size,
            visibility=Visibility.ASSIGNED,
            assignee_columns=("assigned_to",),
        ),
        FilterConfig(
            entity="quotations",
            model=Quotation,
            search_columns=("title", "event_type"),
            sort_options=(
                DATE_ADDED,
                SortOption("valid_until", "Valid Until"),
                SortOption("event_date", "Event Date"),
                SortOption("amount", "Amount"),
            ),
            filters={
                **{status.value: QuotationStatusFilter(status) for status in QuotationStatus},
                **_column_filters("event_type", EVENT_TYPES),
            },
            page_size=page_size,
            max_page_size=max_page_size,
            search_client_name=True,
            enrich=attach_clients,
        ),
        FilterConfig(
            entity="freelancers",
            model=Freelancer,
            search_columns=("full_name", "email", "phone"),
            sort_options=(DATE_ADDED, SortOption("full_name", "Name"), SortOption("rate", "Rate")),
            filters=_column_filters(
                "role",
                {
                    "freelancer_photographer": "Photographer",
                    "freelancer_cinematographer": "Cinematographer",
                    "freelancer_drone_pilot": "Drone Pilot",
                    "freelancer_editor": "Editor",
                    "other_role": "Other",
                },
            ),
            page_size=page_size,
            max_page_size=max_page_size,
        ),
        FilterConfig(
            entity="accounting_entries",
            model=AccountingEntry,
            search_columns=("title", "description", "category"),
            sort_options=(DATE_ADDED, SortOption("entry_date", "Entry Date"), SortOption("amount", "Amount")),
            filters={
                **_column_filters("entry_type", {"credit": "Credit", "debit": "Debit", "assets": "Assets"}),
                **_column_filters("category", {**ASSET_CATEGORIES, **DEBIT_CATEGORIES, **CREDIT_CATEGORIES}),
            },
            page_size=page_size,
            max_page_size=max_page_size,
        ),
        FilterConfig(
            entity="expenses",
            model=Expense,
            search_columns=("description", "category"),
            sort_options=(DATE_ADDED, SortOption("expense_date", "Expense Date"), SortOption("amount", "Amount")),
            filters={
                **_column_filters("category", EXPENSE_CATEGORIES),
                **_column_filters("payment_method", {"cash_payment": "Cash", "digital_payment": "Digital"}),
            },
            page_size=page_size,
            max_page_size=max_page_size,
        ),
        FilterConfig(
            entity="event_staff_assignments",
            model=EventStaffAssignment,
            search_columns=("role",),
            sort_options=(
                DATE_ADDED,
                SortOption("day_date", "Day Date"),
                SortOption("day_number", "Day Number"),
            ),
            filters=_column_filters("role", STAFF_ROLES),
            page_size=page_size,
            max_page_size=max_page_size,
            visibility=Visibility.ASSIGNED,
            assignee_columns=("staff_id", "freelancer_id"),
        ),
    ]
    return {config.entity: config for config in configs}


LIST_CONFIGS = _build_registry()


def get_config(entity: str) -> FilterConfig:
    config = LIST_CONFIGS.get(entity)
    if config is None:
        raise AppError(ErrorCatalog.UNKNOWN_LIST, details={"entity": entity, "available": sorted(LIST_CONFIGS)})
    return config
