"""
Field-level diffing of entity snapshots.

A snapshot is the JSON-normalised field mapping of a model instance. Two
values are considered equal when their canonical JSON serialisations match, so
lists compare element by element in order and a reordering counts as a change.
"""
import json

from django.core.serializers.json import DjangoJSONEncoder
from django.forms.models import model_to_dict

from apps.audit.models import SYSTEM_ACTOR, LogLevel, LogSource, SystemLog

IGNORED_KEYS = frozenset({"id", "pk", "created_at", "updated_at", "created_by"})


def canonical(value):
    return json.dumps(value, cls=DjangoJSONEncoder, sort_keys=True, ensure_ascii=False)


def normalize(value):
    return json.loads(canonical(value))


def snapshot(instance, fields=None, exclude=None):
    data = model_to_dict(instance, fields=fields, exclude=exclude)
    for name, value in data.items():
        if isinstance(value, list) and value and hasattr(value[0], "pk"):
            data[name] = sorted(str(item.pk) for item in value)
    return normalize(data)


def diff_snapshots(old_snapshot, new_snapshot):
    old_snapshot = old_snapshot or {}
    changes = {}
    for key, new_value in new_snapshot.items():
        if key in IGNORED_KEYS:
            continue
        old_value = old_snapshot.get(key)
        if canonical(old_value) != canonical(new_value):
            changes[key] = {"old": normalize(old_value), "new": normalize(new_value)}
    return changes


def compute_changes(
    entity_type,
    entity_id,
    entity_label,
    old_snapshot,
    new_snapshot,
    actor_id,
    actor_name,
    message=None,
    source=LogSource.DATA_OPERATION,
    ip_address=None,
):
    """
    Persist an ``update`` record for the fields that differ between the two
    snapshots and return it, or return ``None`` when nothing changed.
    """
    changes = diff_snapshots(old_snapshot, new_snapshot)
    if not changes:
        return None
    return SystemLog.objects.create(
        level=LogLevel.INFO,
        message=message or f"{entity_label} wurde aktualisiert",
        user_id=str(actor_id) if actor_id is not None else SYSTEM_ACTOR,
        user_name=actor_name or SYSTEM_ACTOR,
        module=f"{entity_type}s",
        action="update",
        entity=entity_type,
        entity_id=str(entity_id),
        changes=changes,
        source=source,
        ip_address=ip_address or "",
    )
