import numpy as np
import pytest

from latent_effects.mappers import (
    ComponentMapper,
    FunctionMapper,
    IndexMapper,
    LinearMapper,
    MapperInput,
    OffsetMapper,
    TaylorMapper,
    first_stage,
    make_mapper,
)


def test_linear_mapper_multi_column():
    mapper = LinearMapper(n=2)
    x = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    inp = MapperInput(main=x)

    assert np.allclose(mapper.evaluate(inp, [2.0, -1.0]), [2.0, -1.0, 1.0])
    assert np.allclose(mapper.jacobian(inp).toarray(), x)
    assert not mapper.invalid_output(inp).any()


def test_linear_mapper_none_state_is_zero():
    mapper = LinearMapper()
    assert np.allclose(mapper.evaluate(MapperInput(main=[1.0, 2.0])), [0.0, 0.0])


def test_linear_mapper_rejects_wrong_state_length():
    with pytest.raises(ValueError, match="mapper expects 1"):
        LinearMapper().evaluate(MapperInput(main=[1.0]), [1.0, 2.0])


def test_offset_mapper_ignores_state():
    mapper = OffsetMapper()
    inp = MapperInput(main=[0.5, 1.5])
    assert mapper.n == 0
    assert np.allclose(mapper.evaluate(inp, None), [0.5, 1.5])
    assert mapper.jacobian(inp).shape == (2, 0)


def test_index_mapper_marks_unknown_levels():
    mapper = IndexMapper([1, 2, 3])
    inp = MapperInput(main=np.array([2, 5, 1]))

    assert np.allclose(mapper.evaluate(inp, [10.0, 20.0, 30.0]), [20.0, 0.0, 10.0])
    assert mapper.invalid_output(inp).tolist() == [False, True, False]
    assert np.allclose(
        mapper.jacobian(inp).toarray(),
        [[0.0, 1.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]],
    )


def test_index_mapper_levels_from_values():
    mapper = make_mapper("iid", np.array(["b", "a", "b", "c"]))
    assert mapper.levels == ("a", "b", "c")
    assert mapper.n == 3


def test_component_mapper_group_blocks_and_scale():
    mapper = ComponentMapper(LinearMapper(), n_group=2)
    inp = MapperInput(main=[1.0, 2.0, 3.0], group=[1, 2, 2])

    assert mapper.n == 2
    assert np.allclose(mapper.evaluate(inp, [10.0, 100.0]), [10.0, 200.0, 300.0])
    assert np.allclose(mapper.jacobian(inp).toarray(), [[1.0, 0.0], [0.0, 2.0], [0.0, 3.0]])

    scaled = MapperInput(main=[1.0, 2.0, 3.0], group=[1, 2, 2], scale=[1.0, 0.5, 2.0])
    assert np.allclose(mapper.evaluate(scaled, [10.0, 100.0]), [10.0, 100.0, 600.0])


def test_component_mapper_rejects_group_out_of_range():
    mapper = ComponentMapper(LinearMapper(), n_group=2)
    with pytest.raises(ValueError, match="group values must lie in 1..2"):
        mapper.evaluate(MapperInput(main=[1.0], group=[3]), [1.0, 1.0])


def test_first_stage():
    main = IndexMapper(["a"])
    assert first_stage(ComponentMapper(main)) is main
    assert first_stage(main) is main


def test_taylor_from_linear_matches_mapper():
    rng = np.random.default_rng(0)
    mapper = ComponentMapper(LinearMapper(n=2), n_replicate=2)
    inp = MapperInput(main=rng.normal(size=(5, 2)), replicate=[1, 2, 1, 2, 2])
    taylor = TaylorMapper.from_linear(mapper, inp)

    for _ in range(3):
        state = rng.normal(size=mapper.n)
        assert np.allclose(taylor.evaluate(inp, state), mapper.evaluate(inp, state))


def test_taylor_linearize_nonlinear_mapper():
    mapper = FunctionMapper(lambda x, s: np.exp(s[0] * np.asarray(x)), n=1)
    x = np.array([0.5, 1.0, 2.0])
    inp = MapperInput(main=x)
    taylor = TaylorMapper.linearize(mapper, inp, [0.0])

    assert not mapper.is_linear()
    assert np.allclose(taylor.evaluate(inp, [0.0]), np.ones(3))
    assert np.allclose(taylor.A.toarray()[:, 0], x, atol=1e-4)


def test_make_mapper_unknown_model():
    with pytest.raises(ValueError, match="Unknown component model"):
        make_mapper("spde")
