import sys

from perona_malik.cli import main

sys.exit(main())
