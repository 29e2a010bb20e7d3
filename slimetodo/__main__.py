import sys

from slimetodo.main import main


sys.exit(main())
