"""portwatch - scheduled port and remote script monitoring with webhook alerts."""
