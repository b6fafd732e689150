"""catalog/ -- Author and Book persistence for the BookStore API.

Layer rule: catalog/ imports only stdlib + third-party libraries.
It does NOT import from api/ or auth/.
"""
