import sys

from diplomacy_engine.cli import main

sys.exit(main())
