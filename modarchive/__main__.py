from __future__ import annotations

from modarchive.cli.archive import main

raise SystemExit(main())
