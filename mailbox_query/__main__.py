"""Entry point for the mailbox query package.

Usage::

    python -m mailbox_query -u me@example.com from:alerts@example.com subject:ready
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    main()
