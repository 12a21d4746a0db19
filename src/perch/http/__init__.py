"""HTTP value types: Request, Response, Redirect, Headers, cookies."""

from perch.http.request import Request
from perch.http.response import Redirect, Response

__all__ = ["Redirect", "Request", "Response"]
