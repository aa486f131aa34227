"""HTTP adapter exposing the user use cases as a JSON API."""
