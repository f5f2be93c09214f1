"""Move package compilation through `sui move build`."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from idol_launchpad.constants import COMPILE_TIMEOUT_SECONDS, TOOLING_CHECK_TIMEOUT_SECONDS
from idol_launchpad.errors import CompilationError, ToolingUnavailableError
from idol_launchpad.ledger import SuiCli
from idol_launchpad.template import GeneratedModule
from idol_launchpad.utils import run_command, safe_json_loads

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledPackage:
    modules: list[str]
    dependencies: list[str]
    digest: list[int] | None = None


@asynccontextmanager
async def package_workspace(generated: GeneratedModule) -> AsyncIterator[Path]:
    """
    Materialize `generated` into a fresh temporary Move package.

    Layout: `Move.toml` at the root, `sources/<module>.move`. The directory is
    removed when the block exits, whatever the outcome.
    """
    root = Path(tempfile.mkdtemp(prefix=f"sui-build-{generated.module_name}-"))
    try:
        sources = root / "sources"
        sources.mkdir()
        (sources / f"{generated.module_name}.move").write_text(generated.source, encoding="utf-8")
        (root / "Move.toml").write_text(generated.manifest, encoding="utf-8")
        yield root
    finally:
        shutil.rmtree(root, ignore_errors=True)


def _diagnostics(stdout: str, stderr: str, *, limit: int = 2000) -> str:
    # sui move build reports some errors (e.g. dependency resolution) on stdout.
    combined = "\n".join(s.strip() for s in (stderr, stdout) if s.strip())
    return combined[:limit] or "no compiler output"


class MoveCompiler:
    def __init__(self, cli: SuiCli, *, timeout_s: float = COMPILE_TIMEOUT_SECONDS) -> None:
        self.cli = cli
        self.timeout_s = timeout_s

    async def ensure_available(self) -> str:
        version = await self.cli.version(timeout_s=TOOLING_CHECK_TIMEOUT_SECONDS)
        logger.debug(f"Using {version}")
        return version

    async def build(self, package_dir: Path, *, module_name: str) -> CompiledPackage:
        """
        Compile `package_dir` to base64 bytecode modules and dependency ids.

        Raises:
            CompilationError: non-zero exit, timeout, or unparseable output.
        """
        cmd = [
            self.cli.sui_bin,
            "move",
            "build",
            "--dump-bytecode-as-base64",
            "--skip-fetch-latest-git-deps",
            "--path",
            str(package_dir),
        ]
        logger.info(f"Compiling Move package {module_name} in {package_dir}...")
        try:
            code, out, err = await run_command(cmd, timeout_s=self.timeout_s)
        except TimeoutError as e:
            raise CompilationError(module_name, str(e)) from e
        except (FileNotFoundError, PermissionError) as e:
            raise ToolingUnavailableError(self.cli.sui_bin, f"{type(e).__name__}: {e}") from e
        if code != 0:
            raise CompilationError(module_name, f"exit {code}\n{_diagnostics(out, err)}")

        try:
            parsed = safe_json_loads(out, context="sui move build output")
        except ValueError as e:
            raise CompilationError(module_name, str(e)) from e

        modules = parsed.get("modules") if isinstance(parsed, dict) else None
        if not isinstance(modules, list) or not modules:
            raise CompilationError(module_name, f"build output has no modules: {out[:200]!r}")
        logger.info(f"Compilation successful: {len(modules)} module(s)")
        return CompiledPackage(
            modules=[str(m) for m in modules],
            dependencies=[str(d) for d in parsed.get("dependencies") or []],
            digest=parsed.get("digest"),
        )
