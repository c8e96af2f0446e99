import sys

from codeweight.cli import main

sys.exit(main())
