"""Process exit codes of the gradle-test-bridge CLI."""

EXIT_SUCCESS = 0
EXIT_TESTS_FAILED = 1
EXIT_INVALID_USAGE = 2
EXIT_BRIDGE_ERROR = 3
