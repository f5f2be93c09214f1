"""
Programmable transaction plans.

A `TransactionPlan` is an ordered list of commands built by the pipelines and
rendered into `sui client ptb` arguments by the ledger client. Plans are plain
data, so tests can assert on the exact call that would be signed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from idol_launchpad.constants import DEFAULT_GAS_BUDGET

PURE_TYPES = frozenset({"u8", "u16", "u32", "u64", "u128", "u256", "bool", "string", "address", "id"})

_UINT_BITS = {"u8": 8, "u16": 16, "u32": 32, "u64": 64, "u128": 128, "u256": 256}


@dataclass(frozen=True)
class Pure:
    value: object
    type: str

    def __post_init__(self) -> None:
        if self.type not in PURE_TYPES:
            raise ValueError(f"unsupported pure type: {self.type}")
        bits = _UINT_BITS.get(self.type)
        if bits is not None:
            if not isinstance(self.value, int) or isinstance(self.value, bool):
                raise ValueError(f"{self.type} argument must be an int, got {self.value!r}")
            if not 0 <= self.value < 2**bits:
                raise ValueError(f"{self.value} does not fit in {self.type}")

    def render(self) -> str:
        if self.type in _UINT_BITS:
            return f"{self.value}{self.type}"
        if self.type == "bool":
            return "true" if self.value else "false"
        if self.type in ("address", "id"):
            return f"@{self.value}"
        text = str(self.value).replace("\\", "\\\\").replace('"', '\\"')
        return f'"{text}"'


@dataclass(frozen=True)
class ObjectArg:
    object_id: str

    def render(self) -> str:
        return f"@{self.object_id}"


@dataclass(frozen=True)
class ResultArg:
    name: str
    index: int | None = None

    def render(self) -> str:
        return self.name if self.index is None else f"{self.name}.{self.index}"


Argument = Pure | ObjectArg | ResultArg


@dataclass(frozen=True)
class SplitCoins:
    amounts: tuple[int, ...]
    assign: str


@dataclass(frozen=True)
class MoveCall:
    target: str
    type_arguments: tuple[str, ...]
    arguments: tuple[Argument, ...]
    assign: str | None = None


Command = SplitCoins | MoveCall


@dataclass
class TransactionPlan:
    gas_budget: int = DEFAULT_GAS_BUDGET
    commands: list[Command] = field(default_factory=list)

    def split_gas(self, amount: int, *, assign: str) -> ResultArg:
        """Split `amount` MIST off the gas coin; returns a handle to the new coin."""
        self.commands.append(SplitCoins(amounts=(amount,), assign=assign))
        return ResultArg(assign, 0)

    def move_call(
        self,
        target: str,
        *,
        type_arguments: list[str] | tuple[str, ...] = (),
        arguments: list[Argument] | tuple[Argument, ...] = (),
        assign: str | None = None,
    ) -> ResultArg | None:
        self.commands.append(
            MoveCall(target=target, type_arguments=tuple(type_arguments), arguments=tuple(arguments), assign=assign)
        )
        return ResultArg(assign) if assign else None

    def move_calls(self) -> list[MoveCall]:
        return [c for c in self.commands if isinstance(c, MoveCall)]

    def to_cli_args(self) -> list[str]:
        """Render as `sui client ptb` arguments (without mode flags such as --dev-inspect)."""
        args: list[str] = []
        for cmd in self.commands:
            if isinstance(cmd, SplitCoins):
                amounts = ", ".join(str(a) for a in cmd.amounts)
                args += ["--split-coins", "gas", f"[{amounts}]", "--assign", cmd.assign]
            elif isinstance(cmd, MoveCall):
                args += ["--move-call", cmd.target]
                if cmd.type_arguments:
                    args.append(f"<{','.join(cmd.type_arguments)}>")
                args += [a.render() for a in cmd.arguments]
                if cmd.assign:
                    args += ["--assign", cmd.assign]
        args += ["--gas-budget", str(self.gas_budget)]
        return args
