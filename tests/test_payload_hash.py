import copy
import json

import pytest

from conftest import DELPHINE, HENNY
from errors import ValidationError
from payload_hash import canonicalize, hash_json, hash_payload


def reorder(value):
    """Same payload with every object's keys in reverse order."""
    if isinstance(value, dict):
        return {key: reorder(value[key]) for key in reversed(list(value))}
    if isinstance(value, list):
        return [reorder(item) for item in value]
    return value


def test_digest_is_sha256_hex():
    digest = hash_payload([DELPHINE])
    assert len(digest) == 64
    int(digest, 16)


def test_key_order_does_not_matter_at_any_depth():
    payload = [DELPHINE, HENNY]
    assert hash_payload(reorder(payload)) == hash_payload(payload)


def test_whitespace_and_key_order_in_json_text():
    compact = json.dumps([DELPHINE], separators=(",", ":"))
    pretty = json.dumps(reorder([DELPHINE]), indent=4)
    assert hash_json(compact) == hash_json(pretty)


def test_leaf_change_changes_digest():
    changed = copy.deepcopy(DELPHINE)
    changed["weeks"]["B"]["Saturday"][0]["end"] = "16:15"
    assert hash_payload([changed]) != hash_payload([DELPHINE])


def test_array_order_is_significant():
    assert hash_payload([DELPHINE, HENNY]) != hash_payload([HENNY, DELPHINE])
    assert canonicalize({"b": [3, 1, 2], "a": 1}) == {"a": 1, "b": [3, 1, 2]}


def test_canonicalize_sorts_nested_keys():
    canonical = canonicalize({"z": {"y": 1, "x": [{"d": 1, "c": 2}]}, "a": None})
    assert list(canonical) == ["a", "z"]
    assert list(canonical["z"]) == ["x", "y"]
    assert list(canonical["z"]["x"][0]) == ["c", "d"]


def test_canonicalize_does_not_mutate_input():
    payload = {"b": [{"d": 1, "c": 2}], "a": 1}
    snapshot = copy.deepcopy(payload)
    canonicalize(payload)
    assert payload == snapshot
    assert list(payload) == ["b", "a"]


def test_invalid_json_text():
    with pytest.raises(ValidationError):
        hash_json("[{\"name\": ")


def test_unserialisable_payload():
    with pytest.raises(ValidationError):
        hash_payload({"when": object()})
