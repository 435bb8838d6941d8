import sys

from emfad.main import main

sys.exit(main())
