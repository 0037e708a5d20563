"""imagefeed: Pixabay feed client, feed session and tag counters."""
