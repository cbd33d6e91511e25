"""Tests for the wisdom tool handlers, run against an in-memory gateway."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from conftest import FakeGateway, make_context, new_id

from wisdom.core.config import LoadedConfig, WisdomConfig
from wisdom.core.exceptions import GatewayError
from wisdom.crypto.keys import generate_keypair
from wisdom.gateway.types import Address, AddressDomain, Agent, FragmentState, Project, Transform
from wisdom.mcp.server import run_tool


def call(ctx, tool, /, **arguments):
    return run_tool(ctx, tool, arguments)


def create_fragment(ctx, transform_uuid, content="Python uses indentation for blocks.", **extra):
    result = call(ctx, "wisdom_create_fragment", content=content, source_transform=transform_uuid, **extra)
    assert result["success"], result
    return result["fragment"]["uuid"]


def relate(ctx, source, target, relation_type, confidence=None):
    args = {"source": source, "target": target, "relation_type": relation_type}
    if confidence is not None:
        args["confidence"] = confidence
    result = call(ctx, "wisdom_create_relation", **args)
    assert result["success"], result
    return result["relation"]


# ============================================================================
# Identity and configuration
# ============================================================================


class TestWhoami:
    def test_configured(self, ctx, agent_uuid, keypair):
        result = call(ctx, "wisdom_whoami")
        assert result["status"] == "configured"
        assert result["agent_uuid"] == agent_uuid
        assert result["public_key"] == keypair.public_key_base64
        assert result["gateway_reachable"] is True
        assert "hint" not in result
        assert "private_key" not in result

    def test_unconfigured(self, bare_ctx, gateway):
        gateway.reachable = False
        result = call(bare_ctx, "wisdom_whoami")
        assert result["status"] == "unconfigured"
        assert result["gateway_reachable"] is False
        assert "wisdom_generate_keypair" in result["hint"]


class TestGenerateKeypair:
    def test_registers_and_saves(self, bare_ctx, gateway, project_root):
        result = call(bare_ctx, "wisdom_generate_keypair", description="test bot")
        assert result["registered"] is True
        assert result["saved"] is True
        agent_uuid = result["agent_uuid"]
        assert gateway.agents[agent_uuid]["public_key"] == result["public_key"]
        assert gateway.agents[agent_uuid]["signature"]

        saved = json.loads((project_root / ".wisdom" / "config.json").read_text())
        assert saved["agent_uuid"] == agent_uuid
        assert saved["private_key"].startswith(result["private_key_preview"][:8])
        assert bare_ctx.keys.has_private_key()
        assert bare_ctx.config.agent_uuid == agent_uuid

    def test_registration_failure_keeps_key(self, ctx, gateway, project_root):
        gateway.create_agent = MagicMock(side_effect=GatewayError("registration closed", status_code=403))
        result = call(ctx, "wisdom_generate_keypair")
        assert result["success"] is True
        assert result["registered"] is False
        assert result["registration_error"] == "registration closed"
        saved = json.loads((project_root / ".wisdom" / "config.json").read_text())
        assert "private_key" in saved
        assert "agent_uuid" not in saved
        assert ctx.config.agent_uuid is None

    def test_save_global(self, bare_ctx, project_root):
        result = call(bare_ctx, "wisdom_generate_keypair", register=False, save_to="global")
        assert result["saved_to"] == str(bare_ctx.loaded.paths.global_config)
        assert "registered" not in result


class TestConfigure:
    def test_update_and_clear(self, ctx, project_root):
        project = new_id()
        ctx.update_config({"current_project": project})
        result = call(ctx, "wisdom_configure", hub_host="hub.example:443", current_project="")
        assert result["updated"] == ["current_project", "hub_host"]
        assert ctx.config.hub_host == "hub.example:443"
        assert ctx.config.current_project is None
        saved = json.loads((project_root / ".wisdom" / "config.json").read_text())
        assert saved == {"hub_host": "hub.example:443"}

    def test_invalid_gateway_url(self, ctx):
        result = call(ctx, "wisdom_configure", gateway_url="gopher://x")
        assert result["success"] is False
        assert result["error"].startswith("Validation error")

    def test_nothing_to_update(self, ctx):
        result = call(ctx, "wisdom_configure")
        assert result["updated"] == []
        assert result["saved_to"] is None

    def test_reload_config(self, ctx):
        paths = ctx.loaded.paths
        ctx._loader = lambda: LoadedConfig(config=WisdomConfig(gateway_url="http://reloaded:1"), paths=paths)
        result = call(ctx, "wisdom_reload_config")
        assert result["gateway_url"] == "http://reloaded:1"
        assert ctx.gateway.base_url == "http://reloaded:1"


class TestQuickstart:
    def test_auto_registers(self, bare_ctx, gateway):
        result = call(bare_ctx, "wisdom_quickstart", task_description="python")
        assert result["auto_registered"] is True
        assert result["agent_uuid"] in gateway.agents
        assert result["relevant_fragments"] == 0
        assert "No prior knowledge found for this task" in result["steps"]

    def test_loads_context(self, ctx, transform_uuid):
        create_fragment(ctx, transform_uuid, content="Python uses indentation.")
        result = call(ctx, "wisdom_quickstart", task_description="indentation")
        assert result["auto_registered"] is False
        assert result["relevant_fragments"] == 1
        assert result["context"][0]["content"] == "Python uses indentation."

    def test_unreachable_gateway_skips_search(self, ctx, gateway):
        gateway.reachable = False
        result = call(ctx, "wisdom_quickstart", task_description="anything")
        assert result["gateway_reachable"] is False
        assert "relevant_fragments" not in result


# ============================================================================
# Fragments
# ============================================================================


class TestFragments:
    def test_create_requires_transform(self, ctx):
        result = call(ctx, "wisdom_create_fragment", content="No transform")
        assert result["success"] is False
        assert "source_transform" in result["error"]
        assert result["details"]["field"] == "source_transform"

    def test_create_requires_key(self, bare_ctx):
        result = call(bare_ctx, "wisdom_create_fragment", content="x", source_transform=new_id())
        assert result["success"] is False
        assert result["details"]["remedy"] == "wisdom_generate_keypair"

    def test_create_and_get(self, ctx, gateway, transform_uuid, agent_uuid):
        uuid = create_fragment(ctx, transform_uuid, confidence=0.8, evidence_type="empirical")
        stored = gateway.fragments[uuid]
        assert stored["creator"]["entity"] == agent_uuid
        assert stored["transform"]["entity"] == transform_uuid
        assert stored["confidence"] == 0.8
        assert ctx.state.recent_fragments == [uuid]

        result = call(ctx, "wisdom_get_fragment", uuid=uuid)
        assert result["fragment"]["evidence_type"] == "empirical"

    def test_default_transform_and_tags(self, ctx, gateway, transform_uuid):
        tag = new_id()
        ctx.update_config({"default_transform": transform_uuid, "default_tags": [tag]})
        result = call(ctx, "wisdom_create_fragment", content="Uses defaults")
        assert result["success"], result
        stored = gateway.fragments[result["fragment"]["uuid"]]
        assert stored["transform"]["entity"] == transform_uuid
        assert [t["entity"] for t in stored["tags"]] == [tag]

    def test_hub_addresses_learned_and_reused(self, project_root, keypair, agent_uuid):
        gateway = FakeGateway(hub_host="remote-hub:8443")
        gateway.add_agent(Agent(uuid=agent_uuid, public_key=keypair.public_key_base64))
        ctx = make_context(project_root, gateway, keypair, agent_uuid, hub_host="home-hub:443")
        transform = gateway.create_transform(
            Transform(
                uuid=new_id(),
                name="t",
                description="d",
                transform_from="text/plain",
                transform_to="text/plain",
                agent=Address.hub("remote-hub:8443", AddressDomain.AGENT, agent_uuid),
            )
        )
        call(ctx, "wisdom_get_transform", uuid=transform.uuid)
        uuid = create_fragment(ctx, transform.uuid)
        stored = gateway.fragments[uuid]
        assert stored["transform"]["host_port"] == "remote-hub:8443"
        assert stored["creator"]["host_port"] == "remote-hub:8443"

    def test_search_scoped_to_current_project(self, ctx, transform_uuid):
        project = new_id()
        create_fragment(ctx, transform_uuid, content="python outside")
        ctx.update_config({"current_project": project})
        create_fragment(ctx, transform_uuid, content="python inside")

        result = call(ctx, "wisdom_search_fragments", query="python")
        assert [f["content"] for f in result["fragments"]] == ["python inside"]
        assert result["total"] == 1

        other = call(ctx, "wisdom_search_fragments", query="python", project=new_id())
        assert other["fragments"] == []

    def test_search_preview_truncated(self, ctx, transform_uuid):
        create_fragment(ctx, transform_uuid, content="p" * 250)
        result = call(ctx, "wisdom_search_fragments", query="p")
        assert result["fragments"][0]["content"] == "p" * 200 + "..."

    def test_list(self, ctx, transform_uuid):
        create_fragment(ctx, transform_uuid, content="q" * 150)
        result = call(ctx, "wisdom_list_fragments", limit=5)
        assert result["fragments"][0]["content"] == "q" * 100 + "..."
        assert result["limit"] == 5

    def test_get_missing(self, ctx):
        result = call(ctx, "wisdom_get_fragment", uuid=new_id())
        assert result["success"] is False
        assert result["error"].startswith("Gateway error")
        assert result["details"]["status_code"] == 404


class TestVerifyFragment:
    def test_valid_signature(self, ctx, transform_uuid):
        uuid = create_fragment(ctx, transform_uuid)
        result = call(ctx, "wisdom_verify_fragment", uuid=uuid)
        assert result["valid"] is True

    def test_tampered_content(self, ctx, gateway, transform_uuid):
        uuid = create_fragment(ctx, transform_uuid)
        gateway.fragments[uuid]["content"] = "Python uses braces for blocks."
        result = call(ctx, "wisdom_verify_fragment", uuid=uuid)
        assert result["valid"] is False
        assert "signature" in result["reason"]

    def test_hub_maintained_fields_do_not_invalidate(self, ctx, gateway, transform_uuid):
        uuid = create_fragment(ctx, transform_uuid)
        gateway.fragments[uuid]["state"] = "verified"
        gateway.fragments[uuid]["trust_summary"] = {"score": 0.9, "votes_count": 4}
        assert call(ctx, "wisdom_verify_fragment", uuid=uuid)["valid"] is True

    def test_creator_key_swapped(self, ctx, gateway, transform_uuid, agent_uuid):
        uuid = create_fragment(ctx, transform_uuid)
        gateway.agents[agent_uuid]["public_key"] = generate_keypair().public_key_base64
        assert call(ctx, "wisdom_verify_fragment", uuid=uuid)["valid"] is False

    def test_undecodable_creator_key(self, ctx, gateway, transform_uuid, agent_uuid):
        uuid = create_fragment(ctx, transform_uuid)
        gateway.agents[agent_uuid]["public_key"] = "%%%"
        result = call(ctx, "wisdom_verify_fragment", uuid=uuid)
        assert result["valid"] is False
        assert "base64" in result["reason"]


# ============================================================================
# Relations and tags
# ============================================================================


class TestRelations:
    def test_create_and_get(self, ctx, transform_uuid):
        a = create_fragment(ctx, transform_uuid, content="a")
        b = create_fragment(ctx, transform_uuid, content="b")
        relation = relate(ctx, a, b, "DERIVED_FROM", confidence=0.6)
        assert relation["type"] == "DERIVED_FROM"
        assert relation["confidence"] == 0.6

        outgoing = call(ctx, "wisdom_get_relations", entity=a, direction="source")
        assert outgoing["count"] == 1
        assert call(ctx, "wisdom_get_relations", entity=a, direction="target")["count"] == 0
        assert call(ctx, "wisdom_get_relations", entity=b)["direction"] == "both"

    def test_link_answer(self, ctx, gateway, transform_uuid):
        question = create_fragment(ctx, transform_uuid, content="Why?")
        answer = create_fragment(ctx, transform_uuid, content="Because.")
        result = call(ctx, "wisdom_link_answer", question=question, answer=answer)
        stored = gateway.relations[result["uuid"]]
        assert stored["type"] == "SUPPORTS"
        assert stored["from"]["entity"] == answer
        assert stored["to"]["entity"] == question
        assert stored["content"] == "answer_to_question"

    def test_type_fragment_creates_tag_once(self, ctx, gateway, transform_uuid):
        a = create_fragment(ctx, transform_uuid, content="What is X?")
        b = create_fragment(ctx, transform_uuid, content="What is Y?")

        first = call(ctx, "wisdom_type_fragment", fragment=a, fragment_type="QUESTION")
        second = call(ctx, "wisdom_type_fragment", fragment=b, fragment_type="QUESTION")

        assert first["type_tag"] == "type:question"
        assert first["type_tag_created"] is True
        assert second["type_tag_created"] is False
        assert second["type_tag_uuid"] == first["type_tag_uuid"]
        relation = gateway.relations[first["uuid"]]
        assert relation["type"] == "TYPED_AS"
        assert relation["to"]["domain"] == "TAG"
        assert gateway.tags[first["type_tag_uuid"]]["category"] == "type"

    def test_type_fragment_rejects_unknown_type(self, ctx):
        result = call(ctx, "wisdom_type_fragment", fragment=new_id(), fragment_type="RUMOR")
        assert result["success"] is False


class TestTags:
    def test_create_get_list(self, ctx):
        created = call(ctx, "wisdom_create_tag", name="topic:python", category="topic", description="Python")
        uuid = created["tag"]["uuid"]
        assert call(ctx, "wisdom_get_tag", uuid=uuid)["tag"]["name"] == "topic:python"
        assert call(ctx, "wisdom_get_tag", name="topic:python")["tag"]["uuid"] == uuid
        listing = call(ctx, "wisdom_list_tags", category="topic")
        assert listing["tags"] == [{"uuid": uuid, "name": "topic:python", "category": "topic"}]
        assert call(ctx, "wisdom_list_tags", category="domain")["tags"] == []

    def test_get_requires_uuid_or_name(self, ctx):
        result = call(ctx, "wisdom_get_tag")
        assert result["success"] is False
        assert "uuid or name" in result["error"]

    def test_get_unknown_name(self, ctx):
        result = call(ctx, "wisdom_get_tag", name="topic:none")
        assert result == {
            "success": False,
            "error": "Tag not found: topic:none",
            "details": {"resource_type": "Tag", "resource_id": "topic:none"},
        }

    def test_invalid_category(self, ctx):
        assert call(ctx, "wisdom_create_tag", name="x", category="colour")["success"] is False

    def test_tag_fragment_by_name_uses_cache(self, ctx, gateway, transform_uuid):
        fragment = create_fragment(ctx, transform_uuid)
        tag_uuid = call(ctx, "wisdom_create_tag", name="topic:python", category="topic")["tag"]["uuid"]
        gateway.calls.clear()

        result = call(ctx, "wisdom_tag_fragment", fragment=fragment, tag="topic:python")
        assert result["tag"] == tag_uuid
        assert ("get_tag_by_name", "topic:python") not in gateway.calls
        relation = gateway.relations[result["uuid"]]
        assert relation["type"] == "RELATED_TO"
        assert relation["to"] == {"host_port": "", "domain": "TAG", "entity": tag_uuid}

    def test_tag_fragment_by_uuid(self, ctx, transform_uuid):
        fragment = create_fragment(ctx, transform_uuid)
        tag = new_id()
        assert call(ctx, "wisdom_tag_fragment", fragment=fragment, tag=tag.upper())["tag"] == tag

    def test_tag_fragment_unknown_name(self, ctx, transform_uuid):
        fragment = create_fragment(ctx, transform_uuid)
        result = call(ctx, "wisdom_tag_fragment", fragment=fragment, tag="topic:missing")
        assert result["success"] is False
        assert result["error"] == "Tag not found: topic:missing"

    def test_suggest_tags_delegates(self, ctx):
        call(ctx, "wisdom_create_tag", name="topic:python", category="topic")
        result = call(ctx, "wisdom_suggest_tags", content="A note about Python", max_suggestions=2)
        assert result["action"] == "tag_suggestion_request"
        assert result["existing_tags"][0]["name"] == "topic:python"
        assert result["max_suggestions"] == 2


# ============================================================================
# Transforms
# ============================================================================


class TestTransforms:
    def test_to_fragment_with_explicit_transform(self, ctx, transform_uuid):
        result = call(ctx, "wisdom_transform_to_fragment", content="Inhalt", transform_uuid=transform_uuid)
        assert result["action"] == "transform_request"
        assert result["transform_spec"] == "One claim per fragment."
        assert "One claim per fragment." in result["instructions"]

    def test_to_fragment_by_domain(self, ctx, transform_uuid):
        result = call(ctx, "wisdom_transform_to_fragment", content="x", domain="software")
        assert result["transform_spec"] == "One claim per fragment."
        assert result["domain"] == "software"

    def test_to_fragment_general_domain_skips_lookup(self, ctx, transform_uuid):
        result = call(ctx, "wisdom_transform_to_fragment", content="x")
        assert result["transform_spec"] is None

    def test_to_fragment_missing_transform_falls_back(self, ctx):
        result = call(ctx, "wisdom_transform_to_fragment", content="x", transform_uuid=new_id())
        assert result["success"] is True
        assert result["transform_spec"] is None

    def test_to_fragment_gateway_failure_falls_back(self, ctx, gateway):
        broken = new_id()
        gateway.errors[broken] = GatewayError("upstream down", status_code=502)
        result = call(ctx, "wisdom_transform_to_fragment", content="x", transform_uuid=broken)
        assert result["success"] is True
        assert result["transform_spec"] is None

    def test_from_fragment_uses_producing_transform(self, ctx, transform_uuid):
        uuid = create_fragment(ctx, transform_uuid, content="Water boils at 100 C.")
        result = call(ctx, "wisdom_transform_from_fragment", fragment_uuid=uuid, target_language="German")
        assert result["direction"] == "decode"
        assert result["fragment_uuid"] == uuid
        assert result["input"] == "Water boils at 100 C."
        assert result["transform_spec"] == "One claim per fragment."

    def test_store_transformed(self, ctx, gateway, transform_uuid):
        result = call(
            ctx,
            "wisdom_store_transformed_fragments",
            fragments=[{"content": "Fact one.", "type": "FACT"}, {"content": "Fact two."}],
            source_transform=transform_uuid,
        )
        assert result["success"] is True
        assert result["stored"] == 2
        assert [f["type"] for f in result["fragments"]] == ["FACT", None]
        for item in result["fragments"]:
            assert gateway.fragments[item["uuid"]]["confidence"] == 0.8

    def test_store_transformed_partial_failure(self, ctx, gateway, transform_uuid):
        original = gateway.create_fragment
        calls = []

        def flaky(fragment, project=None):
            calls.append(fragment)
            if len(calls) == 2:
                raise GatewayError("quota exceeded", status_code=429)
            return original(fragment, project)

        gateway.create_fragment = flaky
        result = call(
            ctx,
            "wisdom_store_transformed_fragments",
            fragments=[{"content": "one"}, {"content": "two"}, {"content": "three"}],
            source_transform=transform_uuid,
        )
        assert result["success"] is False
        assert result["failed_index"] == 1
        assert result["stored"] == 1
        assert len(gateway.fragments) == 1

    def test_store_requires_fragments(self, ctx, transform_uuid):
        result = call(ctx, "wisdom_store_transformed_fragments", fragments=[], source_transform=transform_uuid)
        assert result["success"] is False

    def test_create_list_get(self, ctx, gateway):
        created = call(
            ctx,
            "wisdom_create_transform",
            name="summaries",
            description="meeting summaries",
            transform_to="text/markdown",
            transform_from="text/plain",
            additional_data="Keep decisions only.",
        )
        uuid = created["transform"]["uuid"]
        assert gateway.transforms[uuid]["signature"]
        assert call(ctx, "wisdom_get_transform", uuid=uuid)["transform"]["additional_data"] == "Keep decisions only."
        names = [t["name"] for t in call(ctx, "wisdom_list_transforms")["transforms"]]
        assert names == ["summaries"]

    def test_select_preset(self, ctx):
        result = call(ctx, "wisdom_select_preset", fragment_type="hypothesis", context_pressure=0.71)
        assert result["preset"] == "t1-symbolic"
        assert result["fragment_type"] == "HYPOTHESIS"
        assert result["details"]["name"] == "wisdom-t1-symbolic"

    def test_select_preset_pressure_out_of_range(self, ctx):
        assert call(ctx, "wisdom_select_preset", fragment_type="FACT", context_pressure=1.5)["success"] is False


# ============================================================================
# Projects
# ============================================================================


class TestProjects:
    def test_create_sets_current(self, ctx, gateway, agent_uuid, project_root):
        result = call(ctx, "wisdom_create_project", name="Research", description="notes")
        uuid = result["project"]["uuid"]
        assert result["is_current"] is True
        assert gateway.projects[uuid]["owner"] == agent_uuid
        assert ctx.current_project() == uuid
        assert ctx.state.current_project == uuid
        saved = json.loads((project_root / ".wisdom" / "config.json").read_text())
        assert saved["current_project"] == uuid

    def test_create_without_switching(self, ctx):
        result = call(ctx, "wisdom_create_project", name="Side", set_as_current=False)
        assert ctx.current_project() is None
        assert ctx.state.recent_projects == [result["project"]["uuid"]]

    def test_create_requires_agent(self, bare_ctx):
        result = call(bare_ctx, "wisdom_create_project", name="x")
        assert result["success"] is False
        assert result["details"]["remedy"] == "wisdom_generate_keypair"

    def test_get_without_current(self, ctx):
        result = call(ctx, "wisdom_get_project")
        assert result["current_project"] is None
        assert "wisdom_set_project" in result["message"]

    def test_set_get_clear(self, ctx, gateway, agent_uuid):
        project = gateway.create_project(Project(uuid=new_id(), name="Existing", owner=agent_uuid).to_dict())
        result = call(ctx, "wisdom_set_project", project=project.uuid, persist=False)
        assert result["project"]["name"] == "Existing"
        assert result["saved_to"] is None
        assert call(ctx, "wisdom_get_project")["is_current"] is True

        call(ctx, "wisdom_clear_project", persist=False)
        assert ctx.current_project() is None

    def test_set_unknown_project(self, ctx):
        result = call(ctx, "wisdom_set_project", project=new_id())
        assert result["success"] is False
        assert ctx.config.current_project is None

    def test_list_only_own_projects(self, ctx, gateway):
        call(ctx, "wisdom_create_project", name="Mine")
        gateway.create_project(Project(uuid=new_id(), name="Theirs", owner=new_id()).to_dict())
        result = call(ctx, "wisdom_list_projects")
        assert [p["name"] for p in result["projects"]] == ["Mine"]
        assert result["projects"][0]["is_current"] is True

    def test_update_current(self, ctx):
        call(ctx, "wisdom_create_project", name="Old")
        result = call(ctx, "wisdom_update_project", name="New", visibility="shared", default_transform="")
        assert result["updated"] == ["default_transform", "name", "visibility"]
        assert result["project"]["name"] == "New"
        assert result["project"]["visibility"] == "shared"

    def test_update_without_project(self, ctx):
        result = call(ctx, "wisdom_update_project", name="x")
        assert result["success"] is False
        assert result["details"]["remedy"] == "wisdom_set_project"


# ============================================================================
# Agents and trust
# ============================================================================


class TestAgentsAndTrust:
    def test_get_current_agent(self, ctx, agent_uuid):
        result = call(ctx, "wisdom_get_agent")
        assert result["agent"]["uuid"] == agent_uuid
        assert result["is_current"] is True

    def test_list_agents(self, ctx, gateway):
        gateway.add_agent(Agent(uuid=new_id(), public_key="pk", description="peer"))
        result = call(ctx, "wisdom_list_agents")
        assert result["total"] == 2
        assert sum(a["is_current"] for a in result["agents"]) == 1

    def test_trust_agent_is_validated_not_submitted(self, ctx):
        result = call(ctx, "wisdom_trust_agent", target_agent=new_id(), trust_level=0.5, confidence=0.9)
        assert result["success"] is True
        assert result["submitted"] is False
        assert result["trust_expression"] == {"trust": 0.5, "confidence": 0.9}
        assert result["message"] == "Trust expressed: +0.5 (confidence: 0.9)"

    @pytest.mark.parametrize("args", [{"trust_level": 1.5}, {"trust_level": 0.5, "confidence": -0.1}])
    def test_trust_agent_out_of_range(self, ctx, args):
        result = call(ctx, "wisdom_trust_agent", target_agent=new_id(), **args)
        assert result["success"] is False
        assert result["error"].startswith("Validation error")

    def test_votes(self, ctx, gateway, transform_uuid):
        fragment = create_fragment(ctx, transform_uuid)
        call(ctx, "wisdom_vote_on_fragment", fragment=fragment, vote_type="verify")
        call(ctx, "wisdom_vote_on_fragment", fragment=fragment, vote_type="contest", comment="source?")
        result = call(ctx, "wisdom_get_fragment_votes", fragment=fragment)
        assert result["summary"] == {"total": 2, "verifications": 1, "contestations": 1, "retractions": 0}
        assert all(v["signature"] for v in gateway.votes.values())

    def test_calculate_trust_fragment(self, ctx, gateway, transform_uuid):
        fragment = create_fragment(ctx, transform_uuid)
        gateway.fragments[fragment]["trust_summary"] = {"score": 0.4, "votes_count": 2}
        result = call(ctx, "wisdom_calculate_trust", entity=fragment)
        assert result["entity_type"] == "fragment"
        assert result["effective_trust"] == 0.4

    def test_calculate_trust_agent(self, ctx, gateway):
        peer = gateway.add_agent(Agent(uuid=new_id(), public_key="pk", reputation_score=0.75))
        result = call(ctx, "wisdom_calculate_trust", entity=peer.uuid)
        assert result["entity_type"] == "agent"
        assert result["effective_trust"] == pytest.approx(0.25)

    def test_calculate_trust_unknown(self, ctx):
        unknown = new_id()
        result = call(ctx, "wisdom_calculate_trust", entity=unknown)
        assert result["success"] is False
        assert result["error"] == f"Entity not found: {unknown}"


# ============================================================================
# Validity
# ============================================================================


class TestValidityTools:
    def test_evidence_balance_end_to_end(self, ctx, transform_uuid):
        thesis = create_fragment(ctx, transform_uuid, content="F1", confidence=0.8)
        evidence = create_fragment(ctx, transform_uuid, content="F2")
        relate(ctx, evidence, thesis, "SUPPORTS", confidence=0.9)

        result = call(ctx, "wisdom_get_evidence_balance", fragment_id=thesis)
        assert result["support_score"] == 0.9
        assert result["contradict_score"] == 0.0
        assert result["verdict"] == "well_supported"
        assert result["supporting"] == [{"fragment_id": evidence, "confidence": 0.9}]
        assert result["thesis"]["confidence"] == 0.8

    def test_evidence_balance_at_threshold_is_neutral(self, ctx, transform_uuid):
        thesis = create_fragment(ctx, transform_uuid, content="thesis")
        pro = create_fragment(ctx, transform_uuid, content="pro")
        con = create_fragment(ctx, transform_uuid, content="con")
        relate(ctx, pro, thesis, "SUPPORTS", confidence=0.8)
        relate(ctx, con, thesis, "CONTRADICTS", confidence=0.3)
        result = call(ctx, "wisdom_get_evidence_balance", fragment_id=thesis)
        assert result["net_score"] == 0.5
        assert result["verdict"] == "neutral"

    def test_find_contradictions_with_placeholder(self, ctx, gateway, transform_uuid):
        thesis = create_fragment(ctx, transform_uuid, content="thesis")
        con = create_fragment(ctx, transform_uuid, content="counter")
        relate(ctx, con, thesis, "CONTRADICTS", confidence=0.6)
        ghost = new_id()
        relate(ctx, ghost, thesis, "CONTRADICTS", confidence=0.4)

        result = call(ctx, "wisdom_find_contradictions", fragment_id=thesis)
        assert result["contradiction_count"] == 2
        by_uuid = {c["uuid"]: c for c in result["contradictions"]}
        assert by_uuid[con]["content"] == "counter"
        assert by_uuid[ghost]["content"] == "[Fragment not found]"

    def test_derivation_chain_broken_by_missing_source(self, ctx, transform_uuid):
        child = create_fragment(ctx, transform_uuid, content="child")
        relate(ctx, child, new_id(), "DERIVED_FROM")
        result = call(ctx, "wisdom_check_derivation_chain", fragment_id=child)
        assert result["validity"] == "broken"
        assert result["issues"][0]["issue_type"] == "missing_reference"

    def test_derivation_chain_cycle(self, ctx, transform_uuid):
        a, b, c = (create_fragment(ctx, transform_uuid, content=n) for n in "abc")
        relate(ctx, a, b, "DERIVED_FROM")
        relate(ctx, b, c, "DERIVED_FROM")
        relate(ctx, c, a, "DERIVED_FROM")
        result = call(ctx, "wisdom_check_derivation_chain", fragment_id=a)
        assert result["validity"] == "broken"
        assert any(i["issue_type"] == "circular_dependency" for i in result["issues"])

    def test_derivation_chain_contested_premise(self, ctx, gateway, transform_uuid):
        child = create_fragment(ctx, transform_uuid, content="child")
        parent = create_fragment(ctx, transform_uuid, content="parent")
        gateway.fragments[parent]["state"] = FragmentState.CONTESTED.value
        relate(ctx, child, parent, "DERIVED_FROM")
        result = call(ctx, "wisdom_check_derivation_chain", fragment_id=child)
        assert result["validity"] == "contested"
        assert result["chain_depth"] == 2

    def test_load_context_for_task(self, ctx, gateway, transform_uuid):
        strong = create_fragment(ctx, transform_uuid, content="python typing tips", confidence=0.9)
        weak = create_fragment(ctx, transform_uuid, content="python rumor", confidence=0.1)
        gateway.fragments[strong]["trust_summary"] = {"score": 0.6}

        result = call(ctx, "wisdom_load_context_for_task", task_description="python", token_budget=1000)
        assert result["fragments_found"] == 2
        assert [f["uuid"] for f in result["fragments"]] == [strong]
        assert result["fragments"][0]["relevance_score"] == pytest.approx(0.72)
        assert weak not in json.dumps(result)
        assert ("search_fragments", {"query": "python", "project": None, "limit": 50}) in gateway.calls
