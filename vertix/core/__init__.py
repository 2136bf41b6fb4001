"""Core engine components: auctions, assets, funds, payments and storage"""
