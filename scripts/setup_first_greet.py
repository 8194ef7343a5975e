#!/usr/bin/env python3
"""
Provision the First Greet call-screening assistant in Retell.

Creates a new Retell LLM holding the screening state machine, points the
"First Greet" agent at it (creating the agent on first run) and makes sure
the "First Greet" phone number routes to that agent.

Prerequisites:
  Set RETELL_API_KEY and TRANSFER_PHONE_NUMBER in .env (see .env.example)

Run:
    python scripts/setup_first_greet.py
    python scripts/setup_first_greet.py --dry-run   # print the LLM config only
"""

import os
import sys

# Allow running from repo root
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from dotenv import load_dotenv
load_dotenv()

from first_greet.cli import main


if __name__ == "__main__":
    sys.exit(main())
