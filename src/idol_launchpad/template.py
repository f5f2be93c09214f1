"""
Move source generation for idol coins.

Each launch publishes a fresh one-module package whose `init` creates the
currency with `coin::create_currency` and hands the treasury capability to the
publisher. The module name doubles as the one-time-witness type name (upper-cased).
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass

_TICKER_STRIP_RE = re.compile(r"[^A-Za-z0-9_]")

# Printable ASCII that can appear verbatim inside a Move byte-string literal.
_VERBATIM = frozenset(range(0x20, 0x7F)) - {ord('"'), ord("\\")}


@dataclass(frozen=True)
class LaunchParameters:
    """Caller-supplied launch input. Ticker is used raw in metadata, sanitized in identifiers."""

    ticker: str
    name: str
    description: str
    decimals: int
    image_url: str
    total_supply: int = 0
    fee_rate_bps: int = 0


@dataclass(frozen=True)
class GeneratedModule:
    module_name: str
    struct_name: str
    source: str
    manifest: str


def sanitize_ticker(ticker: str) -> str:
    """Strip everything outside [A-Za-z0-9_] and lower-case the rest."""
    return _TICKER_STRIP_RE.sub("", ticker).lower()


def module_name_for(ticker: str, timestamp_ns: int) -> str:
    sanitized = sanitize_ticker(ticker)
    if not sanitized:
        raise ValueError(f"ticker {ticker!r} has no identifier characters")
    return f"idol_{sanitized}_{timestamp_ns}"


def move_byte_string(value: str) -> str:
    """
    Render `value` as the body of a Move `b"..."` literal.

    Quotes, backslashes, control characters and non-ASCII bytes (after UTF-8
    encoding) are emitted as escapes so caller text can never terminate the literal.
    """
    out = []
    for byte in value.encode("utf-8"):
        if byte in _VERBATIM:
            out.append(chr(byte))
        elif byte == ord('"'):
            out.append('\\"')
        elif byte == ord("\\"):
            out.append("\\\\")
        else:
            out.append(f"\\x{byte:02x}")
    return "".join(out)


def render_manifest(module_name: str) -> str:
    return f"""[package]
name = "{module_name}"
version = "0.0.1"

[addresses]
{module_name} = "0x0"
"""


def render_source(module_name: str, struct_name: str, params: LaunchParameters) -> str:
    return f"""module {module_name}::{module_name} {{
    use std::option;
    use sui::coin;
    use sui::transfer;
    use sui::url;
    use sui::tx_context::{{Self, TxContext}};

    struct {struct_name} has drop {{}}

    fun init(witness: {struct_name}, ctx: &mut TxContext) {{
        let (treasury_cap, metadata) = coin::create_currency<{struct_name}>(
            witness,
            {params.decimals},
            b"{move_byte_string(params.ticker)}",
            b"{move_byte_string(params.name)}",
            b"{move_byte_string(params.description)}",
            option::some(url::new_unsafe_from_bytes(b"{move_byte_string(params.image_url)}")),
            ctx
        );
        transfer::public_transfer(treasury_cap, tx_context::sender(ctx));
        transfer::public_freeze_object(metadata);
    }}
}}
"""


def generate_module(params: LaunchParameters, *, timestamp_ns: int | None = None) -> GeneratedModule:
    """
    Instantiate the coin template for `params`.

    Deterministic for a given timestamp; the timestamp only makes the module
    name unique across launches of the same ticker.
    """
    if not 0 <= params.decimals <= 255:
        raise ValueError(f"decimals must fit in a u8, got {params.decimals}")
    if timestamp_ns is None:
        timestamp_ns = time.time_ns()
    module_name = module_name_for(params.ticker, timestamp_ns)
    struct_name = module_name.upper()
    return GeneratedModule(
        module_name=module_name,
        struct_name=struct_name,
        source=render_source(module_name, struct_name, params),
        manifest=render_manifest(module_name),
    )
