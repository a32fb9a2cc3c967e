from chat_core.providers.reasoning import StreamingAccumulator, compose_reply, split_reply


def test_interleaved_fragments_compose_once():
    acc = StreamingAccumulator()
    acc.feed(reasoning="a")
    acc.feed(answer="x")
    acc.feed(reasoning="b")
    final = acc.feed(answer="y")
    assert final == '<div class="reasoning-content">ab</div>\n\nxy'
    assert acc.compose() == final


def test_no_reasoning_means_plain_answer():
    acc = StreamingAccumulator()
    emissions = [acc.feed(answer=part) for part in ["he", "ll", "o"]]
    assert emissions == ["he", "hell", "hello"]
    assert "reasoning-content" not in acc.compose()


def test_compose_and_split_are_inverse():
    text = compose_reply("think\nstep", "answer\n\nmore")
    assert split_reply(text) == ("think\nstep", "answer\n\nmore")
    assert split_reply("plain") == ("", "plain")
    assert split_reply("") == ("", "")
