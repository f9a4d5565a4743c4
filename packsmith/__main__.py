import sys

from packsmith.cli import main

sys.exit(main())
