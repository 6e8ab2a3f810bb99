import sys

from landsculpt.cli import main

sys.exit(main())
