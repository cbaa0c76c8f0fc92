from __future__ import annotations

import pytest

from caughtwiki.overhaul.spec import ChannelKind, TemplateError, parse_color, parse_template


def _doc(**overrides):
    doc = {
        "name": "community",
        "roles": [
            {"name": "Staff", "color": "#e74c3c", "hoist": True, "position": 2, "permissions": 8},
            {"name": "Member"},
        ],
        "categories": [{"name": "Info"}, {"name": "Voice"}],
        "channels": [
            {
                "name": "rules",
                "category": "Info",
                "overwrites": [{"target": "everyone", "allow": 1024, "deny": 2048}],
            },
            {"name": "Lounge", "type": "voice", "category": "Voice"},
            {"name": "off-topic"},
        ],
    }
    doc.update(overrides)
    return doc


def test_parse_template_builds_ordered_frozen_specs() -> None:
    t = parse_template(_doc(), source="community.json")

    assert t.name == "community"
    assert t.role_names() == ["Staff", "Member"]
    assert t.category_names() == ["Info", "Voice"]
    assert t.channel_names() == ["rules", "Lounge", "off-topic"]

    staff = t.roles[0]
    assert (staff.color, staff.hoist, staff.position, staff.permissions) == (0xE74C3C, True, 2, 8)
    member = t.roles[1]
    assert (member.color, member.hoist, member.position, member.permissions) == (0, False, 0, 0)

    rules, lounge, off_topic = t.channels
    assert rules.kind is ChannelKind.TEXT
    assert rules.overwrites[0].is_everyone
    assert (rules.overwrites[0].allow, rules.overwrites[0].deny) == (1024, 2048)
    assert lounge.kind is ChannelKind.VOICE
    assert off_topic.category is None

    with pytest.raises(AttributeError):
        t.name = "other"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("value", "expected"),
    [("#FFAA00", 0xFFAA00), ("ffaa00", 0xFFAA00), (255, 255), (None, 0)],
)
def test_parse_color_accepts_hex_and_ints(value, expected) -> None:
    assert parse_color(value) == expected


@pytest.mark.parametrize("value", ["#FFF", "#GGGGGG", -1, 0x1000000, True])
def test_parse_color_rejects_garbage(value) -> None:
    with pytest.raises(TemplateError):
        parse_color(value)


@pytest.mark.parametrize(
    ("overrides", "fragment"),
    [
        ({"name": ""}, "template.name"),
        ({"roles": [{"name": "A"}, {"name": "A"}]}, "duplicate role"),
        ({"categories": [{"name": "X"}, {"name": "X"}]}, "duplicate category"),
        ({"channels": [{"name": "a"}, {"name": "a"}]}, "duplicate channel"),
        ({"channels": [{"name": "a", "category": "Nope"}]}, "unknown category"),
        ({"channels": [{"name": "a", "overwrites": [{"target": "Ghost"}]}]}, "unknown role"),
        ({"channels": [{"name": "a", "type": "stage"}]}, "type must be one of"),
        ({"roles": [{"name": "A", "permissions": -8}]}, "permissions"),
        ({"roles": [{"name": "A", "position": True}]}, "position"),
        ({"roles": [{"name": "A", "hoist": "yes"}]}, "hoist"),
        ({"roles": {"name": "A"}}, "roles must be a list"),
    ],
)
def test_invalid_templates_name_the_source_and_field(overrides, fragment) -> None:
    with pytest.raises(TemplateError) as exc:
        parse_template(_doc(**overrides), source="broken.json")
    assert "broken.json" in str(exc.value)
    assert fragment in str(exc.value)


def test_template_must_be_an_object() -> None:
    with pytest.raises(TemplateError):
        parse_template(["not", "a", "dict"])


def test_names_and_category_references_are_trimmed_alike() -> None:
    t = parse_template(
        _doc(
            categories=[{"name": " Info "}],
            channels=[{"name": "rules", "category": " Info "}, {"name": "faq", "category": "Info"}],
        )
    )

    assert t.category_names() == ["Info"]
    assert [c.category for c in t.channels] == ["Info", "Info"]
