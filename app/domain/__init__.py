"""
Domain layer package.

Users, coins, trades and the rules that move prices. No framework
imports, no IO; randomness and time are passed in.
"""
