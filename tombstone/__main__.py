import sys

from .tombstone import main

sys.exit(main())
