import pytest

from omr_layout.core.template_model import TemplateModel, ViewState


@pytest.fixture
def template():
    return TemplateModel()


@pytest.fixture
def view():
    return ViewState()


@pytest.fixture
def one_block_template():
    model = TemplateModel()
    model.add_field_block()
    return model
