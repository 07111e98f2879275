"""vite-workspace -- Vue 3 + Vite generators and executors for monorepo workspaces."""

__version__ = "0.1.0"
