"""
Content hashing for recurring-schedule payloads.

Two payloads that differ only in the key order of their objects hash to
the same digest, so a re-submitted load can be detected and skipped.
Array order is significant and is never sorted.
"""

import hashlib
import json

from errors import ValidationError


def canonicalize(value):
    """Return a copy of ``value`` with every mapping's keys sorted."""
    if isinstance(value, dict):
        return {key: canonicalize(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    return value


def hash_payload(value):
    """SHA-256 hex digest of the canonical JSON form of ``value``.

    ``1`` and ``1.0`` serialise differently and therefore hash
    differently.
    """
    canonical = canonicalize(value)
    try:
        encoded = json.dumps(canonical, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"payload is not JSON serialisable: {e}") from e
    return hashlib.sha256(encoded.encode('utf-8')).hexdigest()


def hash_json(text):
    """Hash raw JSON text; malformed JSON raises :class:`ValidationError`."""
    try:
        value = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"invalid JSON payload: {e}") from e
    return hash_payload(value)
