"""
Application layer package.

Use cases for the exchange: accounts, trades, market listing and the
price simulator tick. Each use case is a single class with one public
`execute` method and depends on domain ports only.
"""
