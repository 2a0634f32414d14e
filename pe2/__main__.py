import sys

from pe2.cli import main

sys.exit(main())
