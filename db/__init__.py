"""Host sales entities the order-history audit attacher works against."""
