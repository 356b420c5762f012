import sys

from gradle_test_bridge.cli import main

sys.exit(main())
