import sys

from descope.cli import main

sys.exit(main())
