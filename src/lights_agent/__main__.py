import sys

from lights_agent.main import cli_main

sys.exit(cli_main())
