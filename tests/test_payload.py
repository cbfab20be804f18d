"""
Tests for outbound request assembly.
"""
import json

from grappa import should

from groq_chat import ChatCompletionRequest, Message
from groq_chat.payload import build_payload, merge_system_prompts


SYSTEM = [
    Message(role="system", content="first"),
    Message(role="system", content="second"),
]


def test_merge_preserves_both_orders():
    messages = [
        Message(role="user", content="a"),
        Message(role="assistant", content="b"),
    ]

    merged = merge_system_prompts(SYSTEM, messages)

    [m.content for m in merged] | should.equal(["first", "second", "a", "b"])
    [m.content for m in messages] | should.equal(["a", "b"])
    (merged is messages) | should.be.false


def test_merge_does_not_deduplicate():
    messages = [Message(role="system", content="first")]

    merged = merge_system_prompts(SYSTEM, messages)

    merged | should.have.length(3)


def test_build_payload_without_system_prompts():
    request = ChatCompletionRequest(
        model="m", messages=[Message(role="user", content="hi")], temperature=0.5
    )

    body = json.loads(build_payload(request))

    body | should.equal(
        {
            "model": "m",
            "messages": [{"role": "user", "content": "hi"}],
            "temperature": 0.5,
            "stream": False,
        }
    )


def test_build_payload_leaves_request_untouched():
    request = ChatCompletionRequest(
        model="m",
        messages=[Message(role="user", content="hi")],
        stop=["\n"],
        logit_bias={"50256": -100},
    )

    body = json.loads(build_payload(request, SYSTEM, stream=True))

    body["stream"] | should.be.true
    body["stop"] | should.equal(["\n"])
    body["logit_bias"] | should.equal({"50256": -100})
    [m["content"] for m in body["messages"]] | should.equal(["first", "second", "hi"])
    request.stream | should.be.false
    request.messages | should.have.length(1)
