"""
Auctioneer core: auction records, bidding rules, the lifecycle engine and
its registry, custody and parameter collaborators.
"""
