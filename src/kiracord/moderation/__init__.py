"""Message moderation: blacklist gate, frequency limits and autoresponds."""
