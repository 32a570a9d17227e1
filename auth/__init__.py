"""auth/ -- Credentials, tokens, sessions, and the service that ties them together.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/ for
Settings in the from_settings() constructors. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
