from depcache.cli import main

raise SystemExit(main())
