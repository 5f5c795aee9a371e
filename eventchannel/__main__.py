import sys

from eventchannel.cli import main

sys.exit(main())
