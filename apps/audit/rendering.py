"""
Human readable one-line summaries of stored log records.

Each changed field is phrased by the first matching rule in ``FIELD_RULES``;
rendering never touches the stored record.
"""

STATUS_FIELDS = frozenset({"status"})
ASSIGNMENT_FIELDS = frozenset({"assigned_to", "assignedTo"})
MONEY_FIELD_LABELS = {
    "total_amount": "Gesamtbetrag",
    "totalAmount": "Gesamtbetrag",
    "subtotal": "Zwischensumme",
    "tax_amount": "Steuerbetrag",
    "taxAmount": "Steuerbetrag",
}


def _is_empty(value):
    return value is None or value == "" or value == {} or value == []


def _length(value):
    return len(value) if isinstance(value, (list, tuple)) else 0


def _status_clause(field, old, new):
    return f'Status von "{old}" zu "{new}" geändert'


def _assignment_clause(field, old, new):
    if _is_empty(new):
        return "Zuständigkeit entfernt"
    if _is_empty(old):
        return "Zuständigkeit hinzugefügt"
    return "Zuständigkeit geändert"


def _money_clause(field, old, new):
    return f"{MONEY_FIELD_LABELS[field]} von {old} € auf {new} € geändert"


def _count_clause(field, old, new):
    return f"Anzahl der {field} von {_length(old)} auf {_length(new)} geändert"


def _default_clause(field, old, new):
    return f"{field} geändert"


FIELD_RULES = [
    (lambda field, old, new: field in STATUS_FIELDS, _status_clause),
    (lambda field, old, new: field in ASSIGNMENT_FIELDS, _assignment_clause),
    (lambda field, old, new: field in MONEY_FIELD_LABELS, _money_clause),
    (
        lambda field, old, new: isinstance(new, (list, tuple)) and _length(old) != len(new),
        _count_clause,
    ),
]


def describe_change(field, change):
    if isinstance(change, dict):
        old, new = change.get("old"), change.get("new")
    else:
        old, new = None, change
    for matches, formatter in FIELD_RULES:
        if matches(field, old, new):
            return formatter(field, old, new)
    return _default_clause(field, old, new)


def readable_message(log):
    clauses = [describe_change(field, change) for field, change in (log.changes or {}).items()]
    if not clauses:
        return log.message
    return f"{log.message}: {', '.join(clauses)}"


def render(log):
    return {
        "id": str(log.id),
        "timestamp": log.timestamp.isoformat() if log.timestamp else None,
        "level": log.level,
        "message": readable_message(log),
        "user_name": log.user_name,
        "source": log.source,
        "module": log.module,
        "action": log.action,
        "entity": log.entity,
    }
