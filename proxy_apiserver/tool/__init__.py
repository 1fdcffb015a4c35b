"""Command line tool for proxy-apiserver."""
