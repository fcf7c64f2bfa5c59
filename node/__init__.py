"""nodeforge 노드 에이전트 CLI와 진단 API."""
