from genpr.cli import main

raise SystemExit(main())
