"""Tests for structural shape matching."""

from __future__ import annotations

from closuredeps.domain.shapes import ANY, identifier, like, shape


class TestLikeScalars:
    def test_equal_strings(self) -> None:
        assert like("goog", "goog")

    def test_different_strings(self) -> None:
        assert not like("goog", "other")

    def test_bool_does_not_match_int(self) -> None:
        assert not like(True, 1)
        assert not like(1, True)

    def test_none_matches_none(self) -> None:
        assert like(None, None)
        assert not like(None, "")


class TestLikeWildcard:
    def test_wildcard_matches_any_value(self) -> None:
        assert like(42, ANY)
        assert like(None, ANY)
        assert like({"a": 1}, ANY)

    def test_wildcard_key_must_be_present(self) -> None:
        assert not like({}, {"a": ANY})


class TestLikeMappings:
    def test_exact_key_set(self) -> None:
        assert like({"a": 1, "b": 2}, {"a": 1, "b": ANY})

    def test_extra_key_fails(self) -> None:
        assert not like({"a": 1, "b": 2}, {"a": 1})

    def test_missing_key_fails(self) -> None:
        assert not like({"a": 1}, {"a": 1, "b": ANY})

    def test_non_mapping_fails(self) -> None:
        assert not like(["a"], {"a": ANY})

    def test_wildcard_values_are_not_read(self) -> None:
        """Wildcard fields of lazy mappings stay unevaluated."""

        class Lazy(dict):
            def get(self, key, default=None):  # type: ignore[no-untyped-def]
                if key == "expensive":
                    raise AssertionError("wildcard value was read")
                return super().get(key, default)

        node = Lazy(type="x", expensive=1)
        assert like(node, {"type": "x", "expensive": ANY})


class TestLikeSequences:
    def test_elementwise(self) -> None:
        assert like([1, "a"], [1, ANY])

    def test_length_mismatch(self) -> None:
        assert not like([1, 2], [1])
        assert not like([], [ANY])

    def test_string_is_not_a_sequence(self) -> None:
        assert not like("ab", ["a", "b"])

    def test_tuple_matches_list_template(self) -> None:
        assert like((1, 2), [1, 2])


class TestTemplates:
    def test_shape_defaults_to_wildcards(self) -> None:
        assert shape("string") == {
            "type": "string",
            "text": ANY,
            "operator": ANY,
            "children": ANY,
        }

    def test_identifier_is_a_leaf(self) -> None:
        template = identifier("goog")
        node = {"type": "identifier", "text": "goog", "operator": None, "children": []}
        assert like(node, template)
        assert not like({**node, "text": "other"}, template)

    def test_identifier_custom_type(self) -> None:
        template = identifier("provide", node_type="property_identifier")
        assert template["type"] == "property_identifier"
