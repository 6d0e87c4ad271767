from datahouse.cli import main

raise SystemExit(main())
