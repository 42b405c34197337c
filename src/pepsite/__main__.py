from pepsite.cli import main

raise SystemExit(main())
