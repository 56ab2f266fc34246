"""Tests for rich type classification."""

import pytest
from variant_bridge import UNREPRESENTABLE
from variant_bridge import NarrowKind
from variant_bridge import NarrowType
from variant_bridge import RichType
from variant_bridge import TypeTag
from variant_bridge import classify
from variant_bridge.mapper import SCALAR_KINDS
from variant_bridge.mapper import is_scalar_tag
from variant_bridge.types import SCALAR_TAGS

CONTAINER_TAGS = {
    TypeTag.HANDLE,
    TypeTag.VARIANT,
    TypeTag.ARRAY,
    TypeTag.MAYBE,
    TypeTag.TUPLE,
    TypeTag.DICT_ENTRY,
}


class TestClassify:
    """Test classify function."""

    @pytest.mark.parametrize(
        "signature,kind",
        [
            ("b", NarrowKind.BOOLEAN),
            ("y", NarrowKind.UCHAR),
            ("n", NarrowKind.INT16),
            ("q", NarrowKind.UINT16),
            ("i", NarrowKind.INT32),
            ("u", NarrowKind.UINT32),
            ("x", NarrowKind.INT64),
            ("t", NarrowKind.INT64),
            ("d", NarrowKind.DOUBLE),
            ("s", NarrowKind.STRING),
            ("o", NarrowKind.STRING),
            ("g", NarrowKind.STRING),
        ],
    )
    def test_scalars(self, signature, kind):
        """Test every scalar maps to its narrow kind."""
        assert classify(signature) == NarrowType(kind)
        assert classify("a" + signature) == NarrowType(kind, is_array=True)

    def test_uint64_shares_int64_storage(self):
        """Test uint64 is narrowed into the int64 storage domain."""
        assert classify("t") == classify("x")

    @pytest.mark.parametrize(
        "signature",
        ["v", "h", "mi", "(is)", "()", "{sv}", "aai", "a{sv}", "av", "ah", "amb", "a(i)", "mas"],
    )
    def test_unrepresentable(self, signature):
        """Test container shapes other than array-of-scalar are unrepresentable."""
        assert classify(signature) is UNREPRESENTABLE

    def test_accepts_rich_type(self):
        """Test classify accepts RichType instances as well as signatures."""
        assert classify(RichType.parse("as")) == NarrowType(NarrowKind.STRING, is_array=True)

    @pytest.mark.parametrize(
        "signature",
        ["b", "ab", "aab", "(((i)))", "a{s(iv)}", "mmmv", "a{ya{sv}}", "(yynqiuxtdsoghv)", "mao"],
    )
    def test_total(self, signature):
        """Test classify never raises for valid descriptors."""
        result = classify(signature)
        assert result is UNREPRESENTABLE or isinstance(result, NarrowType)


class TestScalarTable:
    """Test the scalar kind table covers the type tags."""

    def test_every_scalar_tag_has_a_kind(self):
        """Test no scalar tag is missing from the mapping table."""
        assert set(SCALAR_KINDS) == set(SCALAR_TAGS)

    def test_every_tag_is_scalar_or_container(self):
        """Test every tag is either mapped or a known container."""
        for tag in TypeTag:
            assert is_scalar_tag(tag) != (tag in CONTAINER_TAGS), tag
