#!/usr/bin/env python3
"""
Lesson Presentation Generator
=============================
Turns course lessons (MD/MDX) into slide-deck JSON for the website's
presentation mode, using a generative model and a battery of validators.

Pipeline Stages (per lesson):
  Parse     → Lesson markdown to plain text with component markers and code kept
  Prompt    → Instructions + component whitelist from the slide renderer
  Generate  → Claude Code CLI (or the OpenAI Responses API) writes the JSON
  Validate  → Nine checks; warnings are reported, fatal issues fail the lesson
  Publish   → Working + static copies and a merge-on-write manifest update

Output Structure:
  scripts/output/presentations/
  ├── <module>/<lesson>.json
  ├── <module>/<lesson>.debug-prompt.txt   (with --debug)
  ├── manifest.json
  └── pipeline.log
  website/static/presentations/
  ├── <module>/<lesson>.json
  └── manifest.json

Usage:
  python generate_presentation.py                       # Interactive
  python generate_presentation.py --all                 # Every lesson
  python generate_presentation.py --file intro.md       # One lesson
  python generate_presentation.py --module methodology  # One module
  python generate_presentation.py --audit               # Re-check published decks

Requires:
  - claude CLI on PATH (default backend), or OPENAI_API_KEY with --backend openai

Dependencies:
  pip install -e .
"""

from presentation_pipeline.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
