"""
Runtime package: observable state, memoized computations, watchers and
asyncio helpers for action results.
"""
