"""Marketing and payout metrics at platform, location and portfolio level."""
