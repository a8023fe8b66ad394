from chronicles.cli import main

raise SystemExit(main())
