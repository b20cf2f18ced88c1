import sys

from makelite.command import main

sys.exit(main())
