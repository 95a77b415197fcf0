"""
Change aggregation core: ignore rules, path classification, tree
aggregation and the per-folder accumulator. No I/O besides ``stat``.
"""
