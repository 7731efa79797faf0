"""The glbc command line tool."""
