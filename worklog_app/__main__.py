from worklog_app.cli import main

raise SystemExit(main())
