"""Infrastructure implementations for sydneyqt.

Backend clients, config storage and content readers live in
submodules and are imported from there.
"""
