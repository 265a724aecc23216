"""
Data models shared by the parser, the rule engine and the formatters.
"""
