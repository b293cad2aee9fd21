import sys

from coach.interfaces.cli import main

sys.exit(main())
