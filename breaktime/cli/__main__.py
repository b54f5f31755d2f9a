from breaktime.cli.main import main

raise SystemExit(main())
