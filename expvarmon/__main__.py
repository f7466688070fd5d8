import sys

from expvarmon.cli import main

sys.exit(main())
