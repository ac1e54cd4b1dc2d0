import sys

from optrader.main import main

sys.exit(main())
