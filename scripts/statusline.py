#!/usr/bin/env -S uv run --no-project --script
# /// script
# requires-python = ">=3.12"
# dependencies = ["claude-statusline"]
#
# [tool.uv.sources]
# claude-statusline = { path = "../", editable = true }
# ///

"""Claude Code status line, runnable straight from a checkout.

Receives JSON on stdin from Claude Code after each assistant message and
prints the ANSI-colored status lines.

Install:
    chmod +x scripts/statusline.py
    # Add to ~/.claude/settings.json:
    # { "statusLine": { "type": "command", "command": "/path/to/statusline.py" } }

Or register the installed package instead: ``claude-statusline install``.
"""

from __future__ import annotations

from claude_statusline.cli import main

if __name__ == '__main__':
    main()
