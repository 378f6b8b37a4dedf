import sys

from repocity.cli import main

sys.exit(main())
