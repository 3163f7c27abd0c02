"""
Container for chummer_rules domain modules.

`rules` is the public entry point; the calculators live in `rules_pkg`.
"""
