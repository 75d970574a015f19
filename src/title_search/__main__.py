"""Allow ``python -m title_search``."""

from title_search.cli import main

raise SystemExit(main())
