import sys

from osutunes.tui import main

sys.exit(main())
