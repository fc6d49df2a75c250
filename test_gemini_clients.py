#!/usr/bin/env python3
"""
Test suite for the Gemini analysis and image clients (no network)

Tests:
1. System instruction assembly from analysis options
2. Style suggestion parsing
3. Image extraction from generate_content responses
4. Image generator request shape with a reference image
5. Analysis client response parsing
6. Analysis service interface completeness
"""

import sys
import os
import asyncio
import json
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from google.genai import types

from gbase_slides.clients.analysis_client import (
    AUTO_SLIDE_COUNT_INSTRUCTION,
    AUTO_STYLE,
    DEFAULT_SYSTEM_PROMPT,
    GeminiAnalysisService,
    build_system_instruction,
    parse_style_suggestions,
)
from gbase_slides.clients.base import AnalysisService
from gbase_slides.clients.gemini_client import mask_key
from gbase_slides.clients.image_generator import (
    GeminiImageGenerator,
    build_image_prompt,
    extract_image,
)
from gbase_slides.core.errors import UnknownError
from gbase_slides.models.batch import ImageData
from gbase_slides.models.slides import AnalysisOptions
from testing_support import FakeAnalysisService

print("=" * 60)
print("GBASE SLIDES GEMINI CLIENTS TEST SUITE")
print("=" * 60)
print()


class _FakeModels:
    def __init__(self, response):
        self.response = response
        self.requests = []

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        return self.response


class _FakeAio:
    def __init__(self, models):
        self.models = models


class FakeClient:
    """Stands in for genai.Client: only ``client.aio.models.generate_content``."""

    def __init__(self, response):
        self.aio = _FakeAio(_FakeModels(response))


class FakeClientFactory:
    def __init__(self, response):
        self.response = response
        self.clients = []
        self.keys = []

    def __call__(self, api_key=None):
        self.keys.append(api_key)
        client = FakeClient(self.response)
        self.clients.append(client)
        return client


class _TextResponse:
    def __init__(self, text):
        self.text = text


def image_response(*parts):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def test_system_instruction():
    """Test 1: Style, slide count and richness sections are appended."""
    print("[TEST 1] System Instruction")
    print("-" * 50)

    instruction = build_system_instruction(AnalysisOptions())
    assert instruction.startswith(DEFAULT_SYSTEM_PROMPT)
    assert AUTO_SLIDE_COUNT_INSTRUCTION in instruction
    assert "Visual style (auto)" in instruction
    assert "Text density: auto" in instruction
    print("  ✓ Defaults: auto style, auto count, auto density")

    instruction = build_system_instruction(AnalysisOptions(
        slide_count=5,
        richness="concise",
        system_prompt="Custom designer prompt",
        reference_style="Navy header band",
        visual_style="Hand-drawn"
    ))
    assert instruction.startswith("Custom designer prompt")
    assert "plan exactly 5 slides" in instruction
    assert "[Reference template]: Navy header band" in instruction
    assert "[User preference]: Hand-drawn" in instruction
    assert "Text density: concise" in instruction
    print("  ✓ Custom prompt, fixed count and combined style")

    instruction = build_system_instruction(AnalysisOptions(reference_style="Navy", visual_style=AUTO_STYLE))
    assert "Visual style (template reference)" in instruction
    print("  ✓ Template style alone when preference is auto")
    print()


def test_style_suggestions():
    """Test 2: Suggestions without description are dropped, missing labels filled."""
    print("[TEST 2] Style Suggestions")
    print("-" * 50)

    raw = json.dumps({"suggestions": [
        {"id": "s1", "label": "Minimalist", "description": "Flat shapes on white"},
        {"label": "Empty"},
        {"description": "Warm watercolor washes"},
    ]})
    suggestions = parse_style_suggestions(raw)
    assert [s.label for s in suggestions] == ["Minimalist", "Style 3"]
    assert suggestions[0].id == "s1" and suggestions[1].id.startswith("style_")
    print("  ✓ Parsed 2 of 3 suggestions")

    assert parse_style_suggestions("[]") == []
    try:
        parse_style_suggestions("not json")
        raise AssertionError("Expected UnknownError")
    except UnknownError:
        pass
    print("  ✓ Invalid JSON raises UnknownError")
    print()


def test_extract_image():
    """Test 3: First inline image wins; text-only answers are errors."""
    print("[TEST 3] Image Extraction")
    print("-" * 50)

    response = image_response(
        types.Part(text="Here is your slide"),
        types.Part(inline_data=types.Blob(data=b"\x89PNG", mime_type="image/png")),
    )
    image = extract_image(response)
    assert image.data == b"\x89PNG" and image.mime_type == "image/png"
    print("  ✓ Inline image extracted")

    for response in (image_response(types.Part(text="I cannot draw that")), types.GenerateContentResponse(candidates=[])):
        try:
            extract_image(response)
            raise AssertionError("Expected UnknownError")
        except UnknownError:
            pass
    print("  ✓ Text-only and empty responses raise UnknownError")
    print()


def test_image_generator_request():
    """Test 4: Reference image sent first, fresh client per call."""
    print("[TEST 4] Image Generator Request")
    print("-" * 50)

    response = image_response(types.Part(inline_data=types.Blob(data=b"img", mime_type="image/png")))
    factory = FakeClientFactory(response)
    generator = GeminiImageGenerator(
        api_key="key-1234",
        model="image-model",
        aspect_ratio="16:9",
        image_size="2K",
        client_factory=factory
    )
    reference = ImageData(data=b"ref", mime_type="image/jpeg")

    image = asyncio.run(generator.generate("A lighthouse at dawn", "Flat vector", reference, "English"))
    asyncio.run(generator.generate("A harbour", "Flat vector"))

    assert image.data == b"img"
    assert len(factory.clients) == 2 and factory.keys == ["key-1234", "key-1234"]
    print("  ✓ New client for every call")

    request = factory.clients[0].aio.models.requests[0]
    assert request["model"] == "image-model"
    parts = request["contents"]
    assert parts[0].inline_data.data == b"ref" and parts[0].inline_data.mime_type == "image/jpeg"
    assert "[Image-to-Image Directive]" in parts[1].text
    assert "A lighthouse at dawn" in parts[1].text
    assert "MUST be in English" in parts[1].text
    assert request["config"].image_config.aspect_ratio == "16:9"
    print("  ✓ Reference image and prompt sent")

    plain = factory.clients[1].aio.models.requests[0]["contents"]
    assert len(plain) == 1 and "[Image-to-Image Directive]" not in plain[0].text
    print("  ✓ No reference part without a reference")

    prompt = build_image_prompt("Scene", "", aspect_ratio="4:3")
    assert "Professional, Clean, Modern" in prompt and "4:3" in prompt
    assert mask_key("AIzaSyExample1234") == "...1234"
    print("  ✓ Default style and key masking")
    print()


def test_analysis_client():
    """Test 5: JSON answers validated into PresentationAnalysis."""
    print("[TEST 5] Analysis Client")
    print("-" * 50)

    payload = {
        "detected_language": "English",
        "document_type": "report",
        "global_style_definition": "Isometric, teal on white",
        "visual_coherence": "Two ideas, two slides",
        "slides": [
            {
                "id": 1,
                "title": "Page 1 - Growth",
                "visual_prompt": "Rising isometric bars",
                "text_content": {"main_title": "Growth", "sub_title": "", "body_points": ["+12%"]},
                "metaphor": "Climb",
                "mood": "Confident",
                "explanation": "Numbers first"
            },
            {
                "id": 2,
                "title": "Page 2 - Outlook",
                "visual_prompt": "Horizon with a road",
                "text_content": {"main_title": "Outlook"},
                "metaphor": "Road",
                "mood": "Calm",
                "explanation": "Forward-looking close"
            }
        ]
    }
    factory = FakeClientFactory(_TextResponse(json.dumps(payload)))
    service = GeminiAnalysisService(api_key="key", model="text-model", client_factory=factory)

    analysis = asyncio.run(service.analyze("Revenue grew.", AnalysisOptions(slide_count=2)))
    assert analysis.detected_language == "English"
    assert [slide.title for slide in analysis.slides] == ["Page 1 - Growth", "Page 2 - Outlook"]
    assert analysis.slides[0].text_content.body_points == ["+12%"]
    request = factory.clients[0].aio.models.requests[0]
    assert request["model"] == "text-model" and request["contents"] == "Revenue grew."
    assert "plan exactly 2 slides" in str(request["config"].system_instruction)
    print("  ✓ Analysis parsed and request configured")

    for text in ("", '{"slides": "nope"}'):
        service = GeminiAnalysisService(api_key="key", client_factory=FakeClientFactory(_TextResponse(text)))
        try:
            asyncio.run(service.analyze("Revenue grew.", AnalysisOptions()))
            raise AssertionError("Expected UnknownError")
        except UnknownError:
            pass
    print("  ✓ Empty and malformed answers raise UnknownError")
    print()


def test_client_interfaces():
    """Test 6: Analysis services must implement both analysis entry points."""
    print("[TEST 6] Client Interfaces")
    print("-" * 50)

    class TextOnlyService(AnalysisService):
        async def analyze(self, text, options):
            return None

    try:
        TextOnlyService()
        raise AssertionError("Expected TypeError")
    except TypeError as e:
        assert "analyze_reference_style" in str(e), e
    print("  ✓ Missing analyze_reference_style rejected at instantiation")

    assert "analyze_reference_style" in AnalysisService.__abstractmethods__
    assert isinstance(GeminiAnalysisService(api_key="key", client_factory=FakeClientFactory(None)), AnalysisService)
    assert isinstance(FakeAnalysisService(), AnalysisService)
    print("  ✓ Gemini and fake services satisfy the interface")
    print()


if __name__ == "__main__":
    tests = [
        ("System Instruction", test_system_instruction),
        ("Style Suggestions", test_style_suggestions),
        ("Image Extraction", test_extract_image),
        ("Image Generator Request", test_image_generator_request),
        ("Analysis Client", test_analysis_client),
        ("Client Interfaces", test_client_interfaces),
    ]
    results = []
    for number, (name, test) in enumerate(tests, start=1):
        try:
            test()
            results.append((name, True))
        except Exception as e:
            print(f"  ✗ TEST {number} FAILED: {e}")
            results.append((name, False))

    print("=" * 60)
    passed = sum(1 for _, p in results if p)
    print(f"RESULTS: {passed}/{len(results)} tests passed")
    print("=" * 60)
    sys.exit(0 if passed == len(results) else 1)
