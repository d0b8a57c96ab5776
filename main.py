"""Static file server with access logging and a page-view counter."""

from static_server.app import main

if __name__ == "__main__":
    main()
