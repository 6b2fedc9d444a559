import sys

from clusterweb.main import main

sys.exit(main())
