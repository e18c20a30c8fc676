import sys

from sigv4_http.cli import main

sys.exit(main())
