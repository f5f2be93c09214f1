from __future__ import annotations

from idol_launchpad.effects import (
    BONDING_CURVE,
    COIN_METADATA,
    IAO_POOL,
    TREASURY_CAP,
    ChangeKind,
    MoveType,
    TypePattern,
    coin_of,
    decode_changes,
    published_packages,
    select,
    split_type_args,
)

FULL_2 = "0x" + "0" * 63 + "2"
COIN = "0x" + "b" * 64 + "::idol_x_1::IDOL_X_1"


def test_split_type_args_respects_nesting() -> None:
    assert split_type_args("A, B<C, D>, E") == ["A", "B<C, D>", "E"]


def test_move_type_parse_normalizes_addresses() -> None:
    t = MoveType.parse("0x2::coin::TreasuryCap<0x2::sui::SUI>")
    assert t is not None
    assert t.address == FULL_2
    assert t.module == "coin"
    assert t.name == "TreasuryCap"
    assert t.type_args == (f"{FULL_2}::sui::SUI",)


def test_move_type_parse_rejects_primitives() -> None:
    assert MoveType.parse("u64") is None
    assert MoveType.parse("0x2::coin::Coin<0x2::sui::SUI") is None


def test_patterns_match_structurally_not_by_substring() -> None:
    cap = MoveType.parse(f"0x2::coin::TreasuryCap<{COIN}>")
    fake = MoveType.parse(f"0x9::not_coin::TreasuryCapWrapper<{COIN}>")
    assert TREASURY_CAP.matches(cap)
    assert not TREASURY_CAP.matches(fake)
    assert not COIN_METADATA.matches(cap)


def test_type_arg_pattern() -> None:
    coin = MoveType.parse(f"0x2::coin::Coin<{COIN}>")
    sui = MoveType.parse("0x2::coin::Coin<0x2::sui::SUI>")
    assert coin_of(COIN).matches(coin)
    assert not coin_of(COIN).matches(sui)


def test_address_wildcard() -> None:
    pattern = TypePattern(module="iao", name="IAO")
    assert pattern.matches(MoveType.parse("0xabc::iao::IAO<0x2::sui::SUI>"))
    assert pattern.matches(MoveType.parse("0xdef::iao::IAO"))


def test_decode_changes_and_select() -> None:
    result = {
        "objectChanges": [
            {"type": "published", "packageId": "0xb"},
            {"type": "created", "objectId": "0x1", "objectType": f"0x2::coin::TreasuryCap<{COIN}>"},
            {"type": "mutated", "objectId": "0x2", "objectType": "0x5::bonding_curve::BondingCurve<A, B>"},
            {"type": "created", "objectId": "0x3", "objectType": "0x5::bonding_curve::BondingCurve<A, B>"},
            {"type": "somethingNew", "objectId": "0x4"},
            "garbage",
        ]
    }
    changes = decode_changes(result)
    assert [c.kind for c in changes] == [
        ChangeKind.PUBLISHED,
        ChangeKind.CREATED,
        ChangeKind.MUTATED,
        ChangeKind.CREATED,
        ChangeKind.UNKNOWN,
    ]
    assert published_packages(changes) == ["0xb"]
    assert [c.object_id for c in select(changes, BONDING_CURVE)] == ["0x3"]
    assert [c.object_id for c in select(changes, IAO_POOL)] == []


def test_decode_changes_nested_under_effects() -> None:
    result = {"effects": {"objectChanges": [{"type": "published", "packageId": "0xb"}]}}
    assert published_packages(decode_changes(result)) == ["0xb"]


def test_decode_changes_missing() -> None:
    assert decode_changes({}) == []
