"""Run the proxy-apiserver command line tool."""

from proxy_apiserver.tool.proxy_apiserver import main

if __name__ == "__main__":
    main()
