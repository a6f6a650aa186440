"""Tests for template and body file loading."""

import json

import pytest

from stressbench.core.models import SuccessCondition
from stressbench.core.template_loader import TemplateLoader
from stressbench.errors import ConfigError


@pytest.mark.unit
class TestTemplateLoader:
    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path, make_config):
        loader = TemplateLoader()
        path = tmp_path / "checkout.json"
        config = make_config(
            method="POST",
            body='{"sku": 1}',
            success_condition=SuccessCondition.single("code", "equals", "0"),
        )

        await loader.save(config, str(path), description="checkout flow")
        saved = json.loads(path.read_text())

        assert saved["name"] == "checkout"
        assert saved["description"] == "checkout flow"
        assert await loader.load_config(str(path)) == config

    @pytest.mark.asyncio
    async def test_bare_config_object(self, tmp_path):
        path = tmp_path / "bare.json"
        path.write_text(json.dumps({"url": "http://a.test/", "qps": 3, "totalRequests": 9}))

        config = await TemplateLoader().load_config(str(path))

        assert config.qps == 3
        assert config.total_requests == 9
        assert config.is_count_based

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await TemplateLoader().load(str(tmp_path / "nope.json"))

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            await TemplateLoader().load(str(path))

    @pytest.mark.asyncio
    async def test_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            await TemplateLoader().load(str(path))

    @pytest.mark.asyncio
    async def test_load_body(self, tmp_path):
        path = tmp_path / "body.json"
        path.write_text('{"items": [1, 2, 3]}\n')
        assert await TemplateLoader().load_body(str(path)) == '{"items": [1, 2, 3]}\n'

        with pytest.raises(FileNotFoundError):
            await TemplateLoader().load_body(str(tmp_path / "missing.json"))
