"""auth/ -- Provider authentication for the decoration client.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from bitbucket/. bitbucket/ imports from auth/, not the
other way around.
"""
