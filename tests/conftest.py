"""Shared fixtures for model-tree tests."""

import pytest

from node_models import ModelNode


SAMPLE_YAML = """\
- name: OpenAI
  group: openai
  children:
    - name: GPT-4
      date: "2023-03"
      link: https://openai.com/research/gpt-4
      tooltip: "<strong>GPT-4</strong> multimodal"
    - name: Codex
      dead: true
- name: Meta
  group: meta
  collapsed: true
  children:
    - name: Llama
      children:
        - name: Llama 2
          note: open weights
        - name: Llama 3
          dimNote: "8B / 70B"
    - name: Research
      isSection: true
      children:
        - name: OPT
"""


@pytest.fixture()
def sample_yaml():
    return SAMPLE_YAML


@pytest.fixture()
def document_path(tmp_path):
    """The sample document written to a temp file."""
    path = tmp_path / "models.yaml"
    path.write_text(SAMPLE_YAML, encoding="utf-8")
    return path


@pytest.fixture()
def meta_forest():
    """Root 'meta' with an untagged chain three levels deep."""
    return [
        ModelNode(
            name="Meta",
            group="meta",
            children=[
                ModelNode(
                    name="Llama",
                    children=[ModelNode(name="Llama 2"), ModelNode(name="Llama 3", group="other")],
                ),
                ModelNode(name="OPT"),
            ],
        )
    ]
