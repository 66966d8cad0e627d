"""
Mirror Store — Local clones of every pinned dependency repository.

Each remote URL maps to one deterministic directory under the checkouts
root; sync clones or fetches it and checks out the pinned revision.
"""
