import os
import shlex
import subprocess
import time
from pathlib import Path

from ..support.diagnostics import DiagnosticLog, redact_text
from ..types import CommandResult


class CommandExecutor:
    """
    Version-control command runner.

    Key properties:
    - Executes an argv list (no shell), so paths and messages are never re-parsed.
    - Never waits on a human: terminal and askpass prompting are disabled.
    - Output is bounded; exceeding the bound is reported as a failure.
    """

    def __init__(
        self,
        binary: str = "git",
        timeout_s: float = 120.0,
        max_output_bytes: int = 10 * 1024 * 1024,
        locale: str = "C.UTF-8",
        diagnostics: DiagnosticLog | None = None,
        max_excerpt_chars: int = 2000,
    ):
        self.binary = binary
        self.timeout_s = timeout_s
        self.max_output_bytes = max_output_bytes
        self.locale = locale
        self.diagnostics = diagnostics or DiagnosticLog.disabled()
        self.max_excerpt_chars = max_excerpt_chars

    def build_env(self) -> dict[str, str]:
        env = os.environ.copy()
        env["LANG"] = self.locale
        env["LC_ALL"] = self.locale
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["GCM_INTERACTIVE"] = "never"
        env.pop("GIT_ASKPASS", None)
        env.pop("SSH_ASKPASS", None)
        env.setdefault("GIT_SSH_COMMAND", "ssh -o BatchMode=yes")
        return env

    def _decode(self, raw: bytes | None) -> tuple[str, bool]:
        raw = raw or b""
        too_large = len(raw) > self.max_output_bytes
        if too_large:
            raw = raw[: self.max_output_bytes]
        return raw.decode("utf-8", errors="replace"), too_large

    def run(self, cwd: Path, args: list[str], *, run_id: str = "-") -> CommandResult:
        """Run `<binary> *args` in cwd and block until it exits or times out."""
        argv = [self.binary, *args]
        for a in argv:
            if "\x00" in a:
                raise ValueError("NUL bytes are not allowed in arguments")

        t0 = time.time()
        try:
            p = subprocess.run(
                argv,
                cwd=str(cwd),
                capture_output=True,
                stdin=subprocess.DEVNULL,
                timeout=self.timeout_s,
                shell=False,
                env=self.build_env(),
            )
            stdout, out_too_large = self._decode(p.stdout)
            stderr, err_too_large = self._decode(p.stderr)
            result = CommandResult(
                argv=argv,
                cwd=Path(cwd),
                exit_code=p.returncode,
                stdout=stdout,
                stderr=stderr,
                duration_s=round(time.time() - t0, 3),
                output_too_large=out_too_large or err_too_large,
            )
            if result.output_too_large:
                result.stderr += f"\nOutput exceeded {self.max_output_bytes} bytes"
        except subprocess.TimeoutExpired as e:
            stdout, _ = self._decode(e.stdout if isinstance(e.stdout, bytes) else None)
            stderr, _ = self._decode(e.stderr if isinstance(e.stderr, bytes) else None)
            result = CommandResult(
                argv=argv,
                cwd=Path(cwd),
                exit_code=None,
                stdout=stdout,
                stderr=(stderr + f"\nTimed out after {self.timeout_s}s").strip(),
                duration_s=round(time.time() - t0, 3),
                timed_out=True,
            )
        except FileNotFoundError:
            missing = (
                f"{self.binary} was not found on PATH"
                if Path(cwd).is_dir()
                else f"Working directory does not exist: {cwd}"
            )
            result = CommandResult(
                argv=argv,
                cwd=Path(cwd),
                exit_code=127,
                stderr=missing,
                duration_s=round(time.time() - t0, 3),
            )
        except NotADirectoryError:
            result = CommandResult(
                argv=argv,
                cwd=Path(cwd),
                exit_code=126,
                stderr=f"Working directory is not usable: {cwd}",
                duration_s=round(time.time() - t0, 3),
            )
        except OSError as e:
            # Not executable, exec format errors and the like: still a result.
            result = CommandResult(
                argv=argv,
                cwd=Path(cwd),
                exit_code=126,
                stderr=f"Could not run {self.binary}: {e}",
                duration_s=round(time.time() - t0, 3),
            )

        self.diagnostics.log(
            run_id,
            "command_executed",
            {
                "command": shlex.join(argv),
                "cwd": str(cwd),
                "exit_code": result.exit_code,
                "ok": result.ok,
                "duration_s": result.duration_s,
                "timed_out": result.timed_out,
                "output_too_large": result.output_too_large,
                "stdout": redact_text(result.stdout, max_len=self.max_excerpt_chars),
                "stderr": redact_text(result.stderr, max_len=self.max_excerpt_chars),
            },
        )
        return result
