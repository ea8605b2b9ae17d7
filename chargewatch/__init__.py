"""Status monitor for a handful of EV charging stations scraped from the operator's web page."""
