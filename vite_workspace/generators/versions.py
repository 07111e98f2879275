"""Package versions added to the workspace manifest by the generators."""

from __future__ import annotations

VUE_DEPENDENCIES: dict[str, str] = {
    "vue": "^3.0.5",
}

VUE_DEV_DEPENDENCIES: dict[str, str] = {
    "@vitejs/plugin-vue": "^1.1.5",
    "@vue/compiler-sfc": "^3.0.5",
    "@vue/eslint-config-typescript": "^5.0.2",
    "eslint-plugin-vue": "^7.8.0",
    "typescript": "^4.1.3",
    "vite": "^2.2.2",
}

LINT_DEV_DEPENDENCIES: dict[str, str] = {
    "@vue/eslint-config-prettier": "6.0.0",
    "@vue/eslint-config-typescript": "^5.0.2",
    "eslint-plugin-prettier": "^3.1.3",
    "eslint-plugin-vue": "^7.0.0-0",
}

JEST_DEV_DEPENDENCIES: dict[str, str] = {
    "@types/jest": "^26.0.20",
    "@vue/test-utils": "^2.0.0-0",
    "babel-core": "^7.0.0-bridge.0",
    "jest": "^26.6.3",
    "jest-serializer-vue": "^2.0.2",
    "jest-transform-stub": "^2.0.0",
    "ts-jest": "^26.4.4",
    "vue-jest": "5.0.0-alpha.7",
}

CYPRESS_DEV_DEPENDENCIES: dict[str, str] = {
    "cypress": "^6.2.1",
    "eslint-plugin-cypress": "^2.11.2",
}

# Rewrites the host's dependency graph so that ``.vue`` imports are followed.
VUE_POSTINSTALL = "node node_modules/vite-workspace/patch-dep-graph.js"
