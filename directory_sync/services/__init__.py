"""Import pipeline services: normalize, dedup, diff, select, commit, export."""
