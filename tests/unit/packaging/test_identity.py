"""Unit tests for extension identity derivation."""

from types import SimpleNamespace

import pytest

from extpack.packaging.identity import (
    MAX_DIRNAME_LENGTH,
    compute_directory_name,
    compute_id,
    normalize_publisher,
    parse_package_name,
)
from extpack.utils.exceptions import InvalidPublisher, MissingPublisher, NameTooLong


def descriptor(name, version="1.0.0", publisher=None):
    return SimpleNamespace(name=name, version=version, publisher=publisher)


def test_parse_scoped_package_name():
    """Test that a scoped name is split into namespace and name."""
    parsed = parse_package_name("@acme/widget")
    assert parsed.namespace == "acme"
    assert parsed.name == "widget"


def test_parse_unscoped_package_name():
    """Test that an unscoped name has no namespace."""
    parsed = parse_package_name("widget")
    assert parsed.namespace is None
    assert parsed.name == "widget"


def test_parse_keeps_nested_path_in_name():
    parsed = parse_package_name("@acme/tools/widget")
    assert parsed.namespace == "acme"
    assert parsed.name == "tools/widget"


def test_id_from_namespace():
    """Test identity derivation from a scoped name without a publisher."""
    manifest = descriptor("@acme/widget", version="2.0.0")
    assert compute_id(manifest) == "acme.widget"
    assert compute_directory_name(manifest) == "acme.widget-2.0.0"


def test_id_normalizes_publisher():
    """Test that the publisher is lower-cased and stripped of non-word characters."""
    manifest = descriptor("widget", publisher="Acme Corp!")
    assert compute_id(manifest) == "acmecorp.widget"
    assert compute_directory_name(manifest) == "acmecorp.widget-1.0.0"


def test_explicit_publisher_wins_over_namespace():
    manifest = descriptor("@acme/widget", publisher="Other")
    assert compute_id(manifest) == "other.widget"


def test_normalize_keeps_underscores_and_digits():
    assert normalize_publisher("My_Company 42") == "my_company42"


def test_missing_publisher():
    """Test that a name without namespace or publisher is rejected."""
    with pytest.raises(MissingPublisher):
        compute_id(descriptor("widget"))


def test_empty_publisher_is_missing():
    with pytest.raises(MissingPublisher):
        compute_id(descriptor("widget", publisher=""))


def test_invalid_publisher():
    """Test that a publisher made only of punctuation is rejected."""
    with pytest.raises(InvalidPublisher):
        compute_id(descriptor("widget", publisher="!!! ---"))


def test_directory_name_too_long():
    """Test that over-long directory names are rejected."""
    manifest = descriptor("x" * MAX_DIRNAME_LENGTH, publisher="acme")
    with pytest.raises(NameTooLong) as exc_info:
        compute_directory_name(manifest)
    assert exc_info.value.dirname.startswith("acme.x")


def test_directory_name_just_below_limit():
    # "a." + name + "-1.0.0" must stay below the limit
    name = "n" * (MAX_DIRNAME_LENGTH - 1 - len("a.") - len("-1.0.0"))
    dirname = compute_directory_name(descriptor(name, publisher="a"))
    assert len(dirname) == MAX_DIRNAME_LENGTH - 1
