"""Lucky-money envelope game: prize allocation, double-or-nothing and VietQR payouts."""
