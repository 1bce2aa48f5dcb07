from __future__ import annotations

from claude_statusline.cli import main

if __name__ == '__main__':
    main()
