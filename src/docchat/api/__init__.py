"""HTTP surface. The app factory lives in docchat.api.app."""
