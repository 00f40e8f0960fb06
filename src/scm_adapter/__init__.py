"""Source-control integration adapter for GitHub-driven change workflows.

This package connects inbound GitHub issue events to pull requests:
- Webhook signature verification and issue payload normalization
- Local git workspace lifecycle (clone-or-pull, branch, commit, push)
- GitHub REST operations for issues, comments, and pull requests
- A facade composing all three behind narrow capability protocols
"""
