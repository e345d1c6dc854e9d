"""
Interactive checks for a machine about to use ssm-ssh-connect as a ProxyCommand.

Unlike the ProxyCommand itself this prints to stdout, so run it from a shell.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from typing import List, Optional

from ..aws.instance_connect import read_public_key
from ..config import Settings
from ..errors import PluginNotFoundError, PushError
from ..plugin import find_plugin

SSH_CONFIG_EXAMPLE = """\
# ~/.ssh/config
Host i-* web-*
    ProxyCommand ssm-ssh-connect {profile} %h %r
"""


class Preflight:
    def __init__(self) -> None:
        self.ok = True

    def good(self, name: str, detail: str) -> None:
        print(f"[OK] {name}: {detail}")

    def warn(self, name: str, detail: object) -> None:
        print(f"[WARN] {name}: {detail}")
        self.ok = False


def check_plugin(pf: Preflight, settings: Settings) -> None:
    try:
        path = find_plugin(settings.plugin_candidates)
    except PluginNotFoundError as e:
        pf.warn("session-manager-plugin", e)
        return
    pf.good("session-manager-plugin", path)
    try:
        out = subprocess.check_output([path, "--version"], stderr=subprocess.STDOUT, text=True)
        pf.good("session-manager-plugin version", out.strip().splitlines()[0] if out.strip() else "(empty)")
    except (OSError, subprocess.CalledProcessError) as e:
        pf.warn("session-manager-plugin version", e)


def check_public_key(pf: Preflight, settings: Settings) -> None:
    try:
        key = read_public_key(settings.public_key_path)
    except PushError as e:
        pf.warn("SSH public key", e)
        return
    pf.good("SSH public key", f"{settings.public_key_path} ({key.split()[0]})")


def check_app_home(pf: Preflight, settings: Settings) -> None:
    home = settings.app_home
    if home.exists():
        if os.access(home, os.W_OK):
            pf.good("app directory", str(home))
        else:
            pf.warn("app directory", f"{home} is not writable")
    else:
        pf.good("app directory", f"{home} (created on first run)")


def check_aws_identity(pf: Preflight, profile: str) -> None:
    try:
        import boto3

        session = boto3.Session(profile_name=profile)
        ident = session.client("sts").get_caller_identity()
        pf.good("AWS identity", f"{ident.get('Account')} / {ident.get('Arn')}")
        pf.good("AWS default region", str(session.region_name))
    except Exception as e:
        pf.warn("AWS credentials not verified via STS", e)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="ssm-ssh-connect-preflight")
    parser.add_argument("--profile", help="AWS profile to verify with sts:GetCallerIdentity")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    settings = Settings.from_env()
    pf = Preflight()
    print("== ssm-ssh-connect Preflight ==")
    print(f"Python: {sys.version.split()[0]}")
    check_plugin(pf, settings)
    check_public_key(pf, settings)
    check_app_home(pf, settings)
    if args.profile:
        check_aws_identity(pf, args.profile)

    print()
    print(SSH_CONFIG_EXAMPLE.format(profile=args.profile or "<aws-profile>"))
    print("Preflight complete." if pf.ok else "Preflight found problems.")
    return 0 if pf.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
