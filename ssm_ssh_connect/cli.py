# ssm_ssh_connect/cli.py
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, NoReturn, Optional

from .aws.session import make_session
from .config import Settings
from .errors import StartupError
from .logging_setup import prepare_app_home, setup_logging
from .models import ConnectTarget
from .orchestrators.connect import run_connect
from .signals import install_signal_handlers

# ---------------- version ----------------
try:
    from importlib.metadata import version as _pkg_version
    __VERSION__ = _pkg_version("ssm-ssh-connect")
except Exception:
    __VERSION__ = "0.0.0+dev"

log = logging.getLogger(__name__)


class _UsageParser(argparse.ArgumentParser):
    # ProxyCommand usage errors exit 1, and never touch stdout.
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    p = _UsageParser(
        prog="ssm-ssh-connect",
        description="SSH ProxyCommand reaching EC2 instances through SSM Session Manager.",
        epilog="Example ~/.ssh/config: ProxyCommand ssm-ssh-connect my-profile %h %r",
        add_help=False,
    )
    p.add_argument("aws_profile", help="AWS shared config profile")
    p.add_argument("instance_name", help="value of the instance's Name tag (ssh %%h)")
    p.add_argument("instance_user", help="remote OS user (ssh %%r)")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    args = _build_parser().parse_args(argv)
    target = ConnectTarget(args.aws_profile, args.instance_name, args.instance_user)
    settings = Settings.from_env()

    try:
        prepare_app_home(settings.app_home)
        setup_logging(settings.log_file, debug=settings.debug, max_bytes=settings.log_max_bytes)
    except StartupError as e:
        print(str(e), file=sys.stderr)
        return 1

    install_signal_handlers()
    log.info("ssm-ssh-connect %s: %s", __VERSION__, target)

    try:
        session = make_session(target.profile)
    except StartupError as e:
        log.error("%s", e)
        return 1

    report = run_connect(target, settings, session)
    for step in report.steps:
        log.debug("step %s: %s %s", step.step, step.outcome.value, step.detail)
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
