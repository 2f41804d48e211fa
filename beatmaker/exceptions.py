"""Errors raised by the drum machine core."""


class InvalidArgument (ValueError):

	"""
	An out-of-range step, unknown track, bad tempo or malformed sound/pattern value.

	Raised before any state is changed, so the engine is left exactly as it was.
	"""
