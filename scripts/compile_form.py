#!/usr/bin/env python3
from __future__ import annotations

"""
Compile a prompt into a Tally create-form request.

Run:
  PYTHONPATH=.:src python scripts/compile_form.py --prompt "Create a contact form with name, email and phone"
  PYTHONPATH=.:src python scripts/compile_form.py --file prompt.txt --create --status PUBLISHED
"""

import argparse
import dataclasses
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for p in (REPO_ROOT, REPO_ROOT / "src"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from dotenv import load_dotenv  # noqa: E402

from programs.form_pipeline.config import CompilerConfig  # noqa: E402
from providers.tally_client import TallyApiError  # noqa: E402
from respira_form_service import NoWorkspaceError, RespiraFormService, ServiceNotConfiguredError  # noqa: E402
from schemas.api_models import FormPromptOptions  # noqa: E402


def _dump(obj: object) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2)


def _read_prompt(args: argparse.Namespace) -> str:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return args.prompt or ""


def main() -> int:
    ap = argparse.ArgumentParser(description="Compile a natural-language prompt into a Tally form.")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--prompt", default="", help="Prompt text (plain description or structured JSON definition)")
    src.add_argument("--file", default="", help="Read the prompt from this file")
    ap.add_argument("--create", action="store_true", help="Create the form on Tally (needs TALLY_API_KEY)")
    ap.add_argument("--status", choices=["DRAFT", "PUBLISHED"], default="DRAFT")
    ap.add_argument("--title", default="", help="Override the compiled form title")
    ap.add_argument("--workspace-id", default="WORKSPACE_ID", help="Workspace id written into preview requests")
    ap.add_argument("--no-oracle", action="store_true", help="Skip the LLM stage")
    args = ap.parse_args()

    load_dotenv(REPO_ROOT / ".env", override=False)
    load_dotenv(REPO_ROOT / ".env.local", override=False)

    prompt = _read_prompt(args)
    config = CompilerConfig.from_env()
    if args.no_oracle:
        config = dataclasses.replace(config, use_oracle=False)

    service = RespiraFormService(config=config)
    options = FormPromptOptions(title=args.title or None)

    if not args.create:
        request = service.build_request(prompt, args.workspace_id, options, args.status)
        print(_dump(request.to_api()))
        return 0

    try:
        created = service.create_form_from_prompt(prompt, options, args.status)
    except (ServiceNotConfiguredError, NoWorkspaceError, TallyApiError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(_dump(created))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
